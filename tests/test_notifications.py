from onenumber.models import Notification
from onenumber.services.notification_service import NotificationService


def _seed(user, count=3):
    service = NotificationService()
    return [
        service.create_user_notification(user.id, f'Title {i}', f'Message {i}')['notification']
        for i in range(count)
    ]


def test_create_admin_notification_fans_out_to_active_admins(admin):
    from tests.onenumber_test_utils import OneNumberTestUtils
    OneNumberTestUtils.create_test_admin(is_active=False)
    second = OneNumberTestUtils.create_test_admin()

    result = NotificationService().create_admin_notification('Hello', 'Admins only', 'system')

    assert result['success'] is True
    assert {n.recipient_id for n in result['notifications']} == {admin.id, second.id}


def test_registration_notifies_user_and_admins(client, admin):
    response = client.post('/api/v1/auth/user/register', json={
        'email': 'new@example.com',
        'password': 'password123',
        'first_name': 'New',
        'last_name': 'Person'
    })
    assert response.status_code == 201

    user_id = response.get_json()['data']['user']['id']
    welcome = Notification.query.filter_by(recipient_id=user_id).one()
    assert welcome.title == 'Welcome to our platform!'
    assert welcome.channels == ['in-app', 'email', 'push']

    admin_note = Notification.query.filter_by(recipient_id=admin.id).one()
    assert admin_note.message == 'New Person (new@example.com) has joined the platform.'


def test_list_unread_notifications(client, user, user_headers):
    _seed(user)

    response = client.get('/api/v1/notification?limit=2', headers=user_headers)

    data = response.get_json()['data']
    assert len(data['notifications']) == 2
    assert data['unread_count'] == 3
    assert data['total'] == 3


def test_mark_read_and_include_read(client, user, user_headers):
    first, _, _ = _seed(user)

    response = client.put(f'/api/v1/notification/{first.id}/read', headers=user_headers)
    assert response.status_code == 200

    data = client.get('/api/v1/notification', headers=user_headers).get_json()['data']
    assert data['unread_count'] == 2
    assert first.id not in [n['id'] for n in data['notifications']]

    data = client.get('/api/v1/notification?include_read=true', headers=user_headers).get_json()['data']
    assert data['total'] == 3


def test_mark_all_read(client, user, user_headers):
    _seed(user)

    response = client.put('/api/v1/notification/read', headers=user_headers)

    assert response.get_json()['data']['updated'] == 3
    assert Notification.query.filter_by(is_read=False).count() == 0


def test_recipient_scoping(client, user, other_user_headers):
    first, _, _ = _seed(user)

    response = client.put(f'/api/v1/notification/{first.id}/read', headers=other_user_headers)
    assert response.status_code == 404

    response = client.delete(f'/api/v1/notification/{first.id}', headers=other_user_headers)
    assert response.status_code == 404
    assert Notification.query.count() == 3


def test_delete_notification(client, user, user_headers):
    first, _, _ = _seed(user)

    response = client.delete(f'/api/v1/notification/{first.id}', headers=user_headers)

    assert response.status_code == 200
    assert Notification.query.count() == 2
