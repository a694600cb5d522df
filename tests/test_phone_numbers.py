from datetime import datetime, timedelta

import pytest
from sqlalchemy.orm import Session

from onenumber.exceptions import ConflictError, AuthorizationError, ValidationError
from onenumber.extensions import db
from onenumber.models import PhoneNumber, Subscription, User
from onenumber.services.phone_number_service import PhoneNumberService

from tests.onenumber_test_utils import OneNumberTestUtils


# =============================================================================
# MODEL
# =============================================================================

def test_reserve_sets_holder_and_expiry(user, phone_number):
    before = datetime.utcnow()
    phone_number.reserve(user.id, 30)

    assert phone_number.status == 'reserved'
    assert phone_number.user_id == user.id
    assert before + timedelta(minutes=29) < phone_number.reserved_until <= datetime.utcnow() + timedelta(minutes=30)


def test_reserve_rejects_unavailable_number(user, other_user, phone_number):
    phone_number.reserve(user.id)

    with pytest.raises(ConflictError):
        phone_number.reserve(other_user.id)


def test_activate_requires_own_reservation(user, other_user, phone_number):
    with pytest.raises(ConflictError):
        phone_number.activate(user.id)

    phone_number.reserve(user.id)
    with pytest.raises(AuthorizationError):
        phone_number.activate(other_user.id)

    phone_number.activate(user.id)
    assert phone_number.status == 'active'
    assert phone_number.reserved_until is None


def test_release_clears_assignment(user, phone_number):
    phone_number.reserve(user.id)
    phone_number.release()

    assert phone_number.status == 'available'
    assert phone_number.user_id is None
    assert phone_number.reserved_until is None


def test_reservation_expiry_check(user, phone_number):
    phone_number.reserve(user.id, 30)

    assert not phone_number.is_reservation_expired()
    assert phone_number.is_reservation_expired(datetime.utcnow() + timedelta(minutes=31))


# =============================================================================
# SERVICE
# =============================================================================

def test_update_status_available_clears_profile_reference(user, phone_number):
    service = PhoneNumberService()
    service.update_status(phone_number.id, 'active', user.id)
    assert db.session.get(User, user.id).phone_number_id == phone_number.id

    service.update_status(phone_number.id, 'available')

    assert phone_number.status == 'available'
    assert phone_number.user_id is None
    assert db.session.get(User, user.id).phone_number_id is None


def test_update_status_refuses_other_holder(user, other_user, phone_number):
    service = PhoneNumberService()
    service.update_status(phone_number.id, 'active', user.id)

    with pytest.raises(ConflictError) as exc:
        service.update_status(phone_number.id, 'suspended', other_user.id)
    assert exc.value.status_code == 400


def test_update_status_defaults_to_current_holder(user, phone_number):
    service = PhoneNumberService()
    service.update_status(phone_number.id, 'active', user.id)

    service.update_status(phone_number.id, 'suspended')

    assert phone_number.status == 'suspended'
    assert phone_number.user_id == user.id
    assert phone_number.reserved_until is None


def test_update_status_validation(user, phone_number):
    service = PhoneNumberService()

    with pytest.raises(ValidationError):
        service.update_status(phone_number.id, 'sold')
    with pytest.raises(ValidationError):
        service.update_status(phone_number.id, 'active')


def test_release_expired_reservations(user, phone_number):
    service = PhoneNumberService()
    fresh = OneNumberTestUtils.create_test_phone_number('0700-555-0000')
    phone_number.reserve(user.id, 30)
    fresh.reserve(user.id, 30)
    db.session.commit()

    result = service.release_expired_reservations(now=datetime.utcnow() + timedelta(minutes=10))
    assert result['released'] == []

    phone_number.reserved_until = datetime.utcnow() - timedelta(minutes=1)
    db.session.commit()

    result = service.release_expired_reservations()
    assert result['released'] == ['0700-123-4633']
    assert phone_number.status == 'available'
    assert fresh.status == 'reserved'


def test_import_phone_numbers_collects_duplicates_and_errors(phone_number):
    results = PhoneNumberService().import_phone_numbers([
        {'number': '0800-111-2222', 'category': 'toll-free'},
        {'number': '0800-111-2222'},
        {'number': '0700-123-4633'},
        {'number': 'not a number'},
        {'number': '0800-333-4444', 'category': 'premium'},
    ])

    assert results['inserted'] == ['0800-111-2222']
    assert results['duplicates'] == ['0800-111-2222', '0700-123-4633']
    assert [e['row'] for e in results['errors']] == [3, 4]
    assert PhoneNumber.query.count() == 2


# =============================================================================
# API
# =============================================================================

def test_available_listing_is_public(client, user, phone_number):
    taken = OneNumberTestUtils.create_test_phone_number('0700-999-0000')
    taken.reserve(user.id)
    db.session.commit()

    response = client.get('/api/v1/phone-number/available')

    assert response.status_code == 200
    numbers = [n['number'] for n in response.get_json()['data']]
    assert numbers == ['0700-123-4633']


def test_reserve_endpoint_and_conflict(client, user_headers, other_user_headers, user, phone_number):
    response = client.put(f'/api/v1/phone-number/{phone_number.id}/reserve', headers=user_headers)

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['status'] == 'reserved'
    assert data['user_id'] == user.id
    assert data['reserved_until'] is not None

    response = client.put(f'/api/v1/phone-number/{phone_number.id}/reserve', headers=other_user_headers)
    assert response.status_code == 409
    assert response.get_json()['success'] is False


def test_reserve_requires_login(client, phone_number):
    response = client.put(f'/api/v1/phone-number/{phone_number.id}/reserve')
    assert response.status_code == 401


def test_admin_routes_reject_users(client, user_headers):
    response = client.post('/api/v1/phone-number/add', json={'number': '0800-000-0001'}, headers=user_headers)

    assert response.status_code == 403
    assert response.get_json()['message'] == 'Role: user is not allowed to access this resource'


def test_admin_add_and_duplicate(client, admin_headers):
    response = client.post('/api/v1/phone-number/add',
                           json={'number': '0800-000-0001', 'category': 'toll-free'},
                           headers=admin_headers)
    assert response.status_code == 201
    assert response.get_json()['data']['category'] == 'toll-free'

    response = client.post('/api/v1/phone-number/add', json={'number': '0800-000-0001'}, headers=admin_headers)
    assert response.status_code == 409


def test_admin_status_update_and_stats(client, admin_headers, user, phone_number):
    response = client.put(f'/api/v1/phone-number/{phone_number.id}/status',
                          json={'status': 'active', 'user_id': user.id},
                          headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json()['data']['status'] == 'active'

    response = client.get('/api/v1/phone-number/stats', headers=admin_headers)
    stats = response.get_json()['data']
    assert stats['total'] == 1
    assert stats['by_status']['active'] == 1

    response = client.get('/api/v1/phone-number/taken', headers=admin_headers)
    body = response.get_json()
    assert body['pagination']['total'] == 1
    assert body['data'][0]['user']['email'] == user.email


def test_delete_in_use_number_is_rejected(client, admin_headers, user, phone_number):
    PhoneNumberService().update_status(phone_number.id, 'active', user.id)

    response = client.delete(f'/api/v1/phone-number/{phone_number.id}', headers=admin_headers)
    assert response.status_code == 400

    PhoneNumberService().update_status(phone_number.id, 'available')
    response = client.delete(f'/api/v1/phone-number/{phone_number.id}', headers=admin_headers)
    assert response.status_code == 200
    assert PhoneNumber.query.count() == 0


def test_delete_available_number_removes_subscription_history(client, admin_headers, user, phone_number):
    subscription = OneNumberTestUtils.create_test_subscription(user, phone_number)
    subscription.status = 'expired'
    db.session.commit()
    PhoneNumberService().update_status(phone_number.id, 'available')

    response = client.delete(f'/api/v1/phone-number/{phone_number.id}', headers=admin_headers)

    assert response.status_code == 200
    assert PhoneNumber.query.count() == 0
    assert Subscription.query.count() == 0


def test_delete_number_with_active_subscription_is_rejected(client, admin_headers, user, phone_number):
    OneNumberTestUtils.create_test_subscription(user, phone_number)

    response = client.delete(f'/api/v1/phone-number/{phone_number.id}', headers=admin_headers)

    assert response.status_code == 400
    assert PhoneNumber.query.count() == 1


def test_concurrent_reservation_loses_on_version(client, user, other_user_headers, phone_number):
    number_id = phone_number.id

    with Session(db.engine) as first:
        first_copy = first.get(PhoneNumber, number_id)
        assert phone_number.status == 'available'

        first_copy.reserve(user.id)
        first.commit()

    # The request session still holds the version it read before the first commit
    response = client.put(f'/api/v1/phone-number/{number_id}/reserve', headers=other_user_headers)

    assert response.status_code == 409
    assert response.get_json()['success'] is False

    db.session.expire_all()
    phone_number = db.session.get(PhoneNumber, number_id)
    assert phone_number.user_id == user.id
    assert phone_number.version == 2
