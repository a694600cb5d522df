from tests.onenumber_test_utils import OneNumberTestUtils


def test_register_and_login(client):
    response = client.post('/api/v1/auth/user/register', json={
        'email': 'Ada@Example.com',
        'password': 'password123',
        'first_name': 'Ada',
        'last_name': 'Lovelace'
    })
    assert response.status_code == 201
    assert response.get_json()['data']['user']['email'] == 'ada@example.com'
    assert 'access_token' in response.headers.get('Set-Cookie', '')

    response = client.post('/api/v1/auth/user/login', json={'email': 'ada@example.com', 'password': 'wrong-pass'})
    assert response.status_code == 401

    response = client.post('/api/v1/auth/user/login', json={'email': 'ada@example.com', 'password': 'password123'})
    assert response.status_code == 200
    token = response.get_json()['data']['access_token']

    response = client.get('/api/v1/auth/me', headers={'Authorization': f'Bearer {token}'})
    assert response.get_json()['data']['email'] == 'ada@example.com'


def test_duplicate_registration(client, user):
    response = client.post('/api/v1/auth/user/register', json={
        'email': user.email,
        'password': 'password123',
        'first_name': 'Ada',
        'last_name': 'Again'
    })

    assert response.status_code == 400
    assert response.get_json()['message'] == 'User with this email already exists'


def test_register_validation(client):
    response = client.post('/api/v1/auth/user/register', json={'email': 'nope', 'password': 'short'})

    assert response.status_code == 400
    assert set(response.get_json()['errors']) == {'email', 'password', 'first_name', 'last_name'}


def test_admin_login(client, admin):
    response = client.post('/api/v1/auth/admin/login',
                           json={'email': 'admin@onenumber.test', 'password': 'adminpass123'})

    assert response.status_code == 200
    assert response.get_json()['data']['admin']['role'] == 'admin'


def test_inactive_admin_token_is_rejected(client, admin, admin_headers):
    admin.is_active = False

    response = client.get('/api/v1/auth/me', headers=admin_headers)
    assert response.status_code == 401


def test_token_from_cookie(client, user):
    client.set_cookie('access_token', OneNumberTestUtils.auth_headers(user)['Authorization'].split()[1])

    response = client.get('/api/v1/auth/me')
    assert response.status_code == 200


def test_missing_token(client):
    response = client.get('/api/v1/auth/me')

    assert response.status_code == 401
    assert response.get_json() == {'success': False, 'message': 'Authentication required'}


def test_health(client):
    response = client.get('/api/v1/health')

    assert response.status_code == 200
    assert response.get_json()['checks']['database'] == 'healthy'
