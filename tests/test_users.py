from datetime import datetime, timedelta

from onenumber.extensions import db
from onenumber.models import User, PhoneNumber, Subscription, PaymentLink, Notification
from onenumber.services.notification_service import NotificationService
from onenumber.services.phone_number_service import PhoneNumberService
from onenumber.services.user_service import add_working_days

from tests.onenumber_test_utils import OneNumberTestUtils


def test_add_working_days_skips_weekends():
    friday = datetime(2026, 10, 16, 9, 0)
    saturday = datetime(2026, 10, 17, 9, 0)

    assert add_working_days(friday, 1) == datetime(2026, 10, 19, 9, 0)
    assert add_working_days(friday, 5) == datetime(2026, 10, 23, 9, 0)
    assert add_working_days(saturday, 5) == datetime(2026, 10, 23, 9, 0)


# =============================================================================
# PROFILE
# =============================================================================

def test_profile_includes_held_number(client, user, user_headers, phone_number):
    PhoneNumberService().update_status(phone_number.id, 'active', user.id)

    response = client.get('/api/v1/user/profile', headers=user_headers)

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['email'] == 'ada@example.com'
    assert data['phone_number']['number'] == '0700-123-4633'


def test_update_profile_name_and_email(client, user, other_user, user_headers):
    response = client.put('/api/v1/user/profile', json={'firstName': 'Augusta'}, headers=user_headers)
    assert response.status_code == 200
    assert response.get_json()['data']['first_name'] == 'Augusta'
    assert response.get_json()['message'] == 'Profile updated successfully'

    response = client.put('/api/v1/user/profile', json={'email': other_user.email}, headers=user_headers)
    assert response.status_code == 409

    user.is_email_verified = True
    db.session.commit()

    response = client.put('/api/v1/user/profile', json={'email': 'augusta@example.com'}, headers=user_headers)
    assert response.status_code == 200
    assert response.get_json()['message'] == 'Profile updated. Please verify your new email address.'
    assert user.email == 'augusta@example.com'
    assert user.is_email_verified is False


def test_update_password(client, user, user_headers):
    response = client.put('/api/v1/user/update-password', json={
        'currentPassword': 'wrong-password',
        'newPassword': 'new-password-1',
        'confirmPassword': 'new-password-1'
    }, headers=user_headers)
    assert response.status_code == 401

    response = client.put('/api/v1/user/update-password', json={
        'current_password': 'password123',
        'new_password': 'new-password-1',
        'confirm_password': 'new-password-2'
    }, headers=user_headers)
    assert response.status_code == 400

    response = client.put('/api/v1/user/update-password', json={
        'current_password': 'password123',
        'new_password': 'new-password-1',
        'confirm_password': 'new-password-1'
    }, headers=user_headers)
    assert response.status_code == 200
    assert response.get_json()['data']['access_token']

    response = client.post('/api/v1/auth/user/login',
                           json={'email': 'ada@example.com', 'password': 'new-password-1'})
    assert response.status_code == 200


# =============================================================================
# ADMIN USER MANAGEMENT
# =============================================================================

def test_admin_list_get_and_update(client, admin_headers, user_headers, user, other_user):
    response = client.get('/api/v1/user', headers=admin_headers)
    assert response.get_json()['count'] == 2

    response = client.get('/api/v1/user?search=grace', headers=admin_headers)
    assert [u['email'] for u in response.get_json()['data']] == ['grace@example.com']

    response = client.get(f'/api/v1/user/{user.id}', headers=admin_headers)
    assert response.get_json()['data']['phone_number'] is None

    response = client.put(f'/api/v1/user/{user.id}',
                          json={'accountStatus': 'suspended', 'lastName': 'Byron'},
                          headers=admin_headers)
    assert response.status_code == 200
    assert user.account_status == 'suspended'
    assert user.last_name == 'Byron'

    response = client.put(f'/api/v1/user/{user.id}', json={'account_status': 'banned'}, headers=admin_headers)
    assert response.status_code == 400

    response = client.get('/api/v1/user', headers=user_headers)
    assert response.status_code == 403

    response = client.get('/api/v1/user/not-a-uuid', headers=admin_headers)
    assert response.status_code == 400


def test_admin_unassign_phone_number(client, admin_headers, user, phone_number):
    PhoneNumberService().update_status(phone_number.id, 'active', user.id)

    response = client.put(f'/api/v1/user/{user.id}/unassign-number', headers=admin_headers)

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['user']['phone_number_id'] is None
    assert data['phone_number']['status'] == 'available'
    assert phone_number.user_id is None
    assert phone_number.reserved_until is None

    response = client.put(f'/api/v1/user/{user.id}/unassign-number', headers=admin_headers)
    assert response.status_code == 400
    assert response.get_json()['message'] == 'User does not have a phone number assigned'


def test_admin_delete_user(client, admin_headers, user, phone_number):
    PhoneNumberService().update_status(phone_number.id, 'active', user.id)

    response = client.delete(f'/api/v1/user/{user.id}', headers=admin_headers)
    assert response.status_code == 400

    subscription = OneNumberTestUtils.create_test_subscription(user, phone_number)
    subscription.status = 'expired'
    OneNumberTestUtils.create_test_payment_link(user, 'R-old')
    NotificationService().create_user_notification(user.id, 'Hello', 'Welcome')
    PhoneNumberService().update_status(phone_number.id, 'available')
    user_id = user.id

    response = client.delete(f'/api/v1/user/{user_id}', headers=admin_headers)

    assert response.status_code == 200
    assert db.session.get(User, user_id) is None
    assert Subscription.query.count() == 0
    assert PaymentLink.query.count() == 0
    assert Notification.query.filter_by(recipient_id=user_id).count() == 0
    assert PhoneNumber.query.count() == 1


def test_admin_activate_account(client, admin, admin_headers, user, phone_number, outbox):
    subscription = OneNumberTestUtils.create_test_subscription(user, phone_number)
    duration = subscription.end_date - subscription.start_date
    earliest_start = datetime.utcnow() + timedelta(days=5)

    response = client.put(f'/api/v1/user/{user.id}/activate', headers=admin_headers)

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['user']['account_status'] == 'active'
    assert len(data['subscriptions']) == 1

    assert user.account_activated_at is not None
    assert subscription.start_date >= earliest_start
    assert subscription.end_date - subscription.start_date == duration

    assert Notification.query.filter_by(recipient_id=user.id).one().title == 'Account Activated'
    assert Notification.query.filter_by(recipient_id=admin.id).one().title == 'User Account Activated'
    assert [m.subject for m in outbox] == ['Your Account Has Been Activated']

    response = client.put(f'/api/v1/user/{user.id}/activate', headers=admin_headers)
    assert response.status_code == 400
