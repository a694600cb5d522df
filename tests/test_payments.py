import pytest
import requests

from onenumber.exceptions import ConfigurationError, GatewayError, GatewayTimeoutError
from onenumber.extensions import db
from onenumber.models import PaymentLink, PaymentTransaction, Subscription, Notification, User
from onenumber.utils.budpay_client import BudPayClient

from tests.onenumber_test_utils import OneNumberTestUtils, budpay_verify_body


# =============================================================================
# PAYMENT LINKS
# =============================================================================

def test_create_payment_link(client, user, user_headers, budpay):
    response = client.post('/api/v1/payment/create-payment-link',
                           json={'planType': 'standard'}, headers=user_headers)

    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['authorization_url'].startswith('https://checkout.budpay.test/')
    assert data['reference'].startswith('OneNumber-')

    call = budpay.initialize_calls[0]
    assert call['amount'] == 33000
    assert call['currency'] == 'NGN'
    assert call['email'] == user.email
    assert call['callback'] == 'http://localhost:3000/payment-success/'
    assert call['full_name'] == 'Ada Lovelace'

    link = PaymentLink.query.filter_by(reference_id=data['reference']).one()
    assert link.status == 'pending'
    assert link.plan_type == 'standard'
    assert link.expires_at > link.created_at


def test_create_payment_link_rejects_unknown_plan(client, user_headers, budpay):
    response = client.post('/api/v1/payment/create-payment-link',
                           json={'plan_type': 'gold'}, headers=user_headers)

    assert response.status_code == 400
    assert budpay.initialize_calls == []


def test_create_payment_link_bad_gateway_body(client, user_headers, budpay):
    budpay.initialize_response = {'status': True, 'data': {'authorization_url': 'https://x'}}

    response = client.post('/api/v1/payment/create-payment-link',
                           json={'plan_type': 'lite'}, headers=user_headers)

    assert response.status_code == 500
    assert PaymentLink.query.count() == 0


def test_cancel_payment(client, user, user_headers, other_user_headers):
    OneNumberTestUtils.create_test_payment_link(user, 'R-cancel')

    response = client.post('/api/v1/payment/cancel/R-cancel', headers=other_user_headers)
    assert response.status_code == 403

    response = client.post('/api/v1/payment/cancel/R-cancel', headers=user_headers)
    assert response.status_code == 200
    assert response.get_json()['data']['status'] == 'cancelled'

    response = client.post('/api/v1/payment/cancel/R-missing', headers=user_headers)
    assert response.status_code == 404


# =============================================================================
# VERIFICATION
# =============================================================================

def test_verify_payment_records_once(client, user, user_headers, budpay):
    budpay.verify_response = budpay_verify_body('R1', user.email)

    response = client.get('/api/v1/payment/verify-payment/R1', headers=user_headers)
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['reference'] == 'R1'
    assert data['amount'] == 33000.0
    assert data['verified'] is True

    transaction = PaymentTransaction.query.filter_by(reference='R1').one()
    assert transaction.user_id == user.id
    assert transaction.verified_by == user.id
    assert transaction.transaction_date.tzinfo is None

    response = client.get('/api/v1/payment/verify-payment/R1', headers=user_headers)
    assert response.status_code == 200
    assert budpay.verify_calls == ['R1']
    assert PaymentTransaction.query.count() == 1


def test_verify_payment_rejects_other_customer(client, user_headers, budpay):
    budpay.verify_response = budpay_verify_body('R2', 'someone@else.com')

    response = client.get('/api/v1/payment/verify-payment/R2', headers=user_headers)

    assert response.status_code == 403
    assert PaymentTransaction.query.count() == 0


def test_admin_can_verify_any_customer(client, admin_headers, budpay):
    budpay.verify_response = budpay_verify_body('R3', 'someone@else.com')

    response = client.get('/api/v1/payment/verify-payment/R3', headers=admin_headers)

    assert response.status_code == 201
    assert PaymentTransaction.query.filter_by(reference='R3').one().user_id is None


def test_verify_payment_gateway_failure(client, user_headers, budpay):
    budpay.verify_response = {'status': False, 'message': 'Transaction not found'}

    response = client.get('/api/v1/payment/verify-payment/R4', headers=user_headers)

    assert response.status_code == 404
    assert response.get_json()['message'] == 'Transaction not found'


def test_verify_payment_malformed_amount(client, user, user_headers, budpay):
    budpay.verify_response = budpay_verify_body('R5', user.email, amount='abc')

    response = client.get('/api/v1/payment/verify-payment/R5', headers=user_headers)

    assert response.status_code == 400


# =============================================================================
# PAYMENT -> SUBSCRIPTION
# =============================================================================

def test_reserve_pay_and_subscribe_end_to_end(client, app, admin, user, user_headers,
                                              other_user_headers, phone_number, budpay, outbox):
    response = client.put(f'/api/v1/phone-number/{phone_number.id}/reserve', headers=user_headers)
    assert response.status_code == 200
    assert phone_number.status == 'reserved'
    assert phone_number.reserved_until is not None

    OneNumberTestUtils.create_test_payment_link(user, 'R1', plan_type='premium')

    response = client.post('/api/v1/payment/success/R1', json={'numberId': phone_number.id}, headers=user_headers)
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['payment']['status'] == 'completed'
    assert data['subscription']['plan'] == 'premium'
    assert data['subscription']['status'] == 'active'
    assert data['phone_number']['status'] == 'active'

    subscription = Subscription.query.one()
    assert subscription.payment_reference == 'R1'
    assert subscription.user_id == user.id
    assert phone_number.status == 'active'
    assert phone_number.user_id == user.id
    assert phone_number.reserved_until is None
    assert db.session.get(User, user.id).phone_number_id == phone_number.id

    user_notes = Notification.query.filter_by(recipient_id=user.id).all()
    assert [n.title for n in user_notes] == ['Subscription Activated']
    assert {m.subject for m in outbox} == {'Subscription Confirmation', 'New Subscription: 0700-123-4633'}

    response = client.put(f'/api/v1/phone-number/{phone_number.id}/reserve', headers=other_user_headers)
    assert response.status_code == 409


def test_success_rejects_number_reserved_by_someone_else(client, admin, user, other_user,
                                                         user_headers, phone_number):
    phone_number.reserve(other_user.id)
    db.session.commit()
    OneNumberTestUtils.create_test_payment_link(user, 'R6')

    response = client.post('/api/v1/payment/success/R6', json={'number_id': phone_number.id}, headers=user_headers)

    assert response.status_code == 403
    assert Subscription.query.count() == 0
    assert PaymentLink.query.filter_by(reference_id='R6').one().status == 'pending'


def test_success_rejects_cancelled_link(client, admin, user, user_headers, phone_number):
    link = OneNumberTestUtils.create_test_payment_link(user, 'R7')
    link.mark_cancelled()
    db.session.commit()

    response = client.post('/api/v1/payment/success/R7', json={'number_id': phone_number.id}, headers=user_headers)

    assert response.status_code == 400
    assert response.get_json()['message'] == 'Payment has been cancelled'


def test_success_requires_number_id(client, user_headers):
    response = client.post('/api/v1/payment/success/R8', json={}, headers=user_headers)
    assert response.status_code == 400


# =============================================================================
# BUDPAY CLIENT
# =============================================================================

class _Response:
    def __init__(self, status_code, body):
        self.status_code = status_code
        self._body = body
        self.text = str(body)

    def json(self):
        return self._body

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(response=self)


class _Session:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def _send(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        if self.error:
            raise self.error
        return self.response

    def post(self, url, **kwargs):
        return self._send('POST', url, **kwargs)

    def get(self, url, **kwargs):
        return self._send('GET', url, **kwargs)


def test_budpay_client_sends_bearer_and_string_amount(app):
    session = _Session(_Response(200, {'status': True, 'data': {}}))
    client = BudPayClient(session=session)

    client.initialize_transaction('a@b.com', 16500, 'NGN', 'http://cb', 'ref', 'A B')

    method, url, kwargs = session.requests[0]
    assert method == 'POST'
    assert url == 'https://api.budpay.com/api/v2/transaction/initialize'
    assert kwargs['json']['amount'] == '16500'
    assert kwargs['headers']['Authorization'] == 'Bearer sk_test_budpay'
    assert kwargs['timeout'] == 10


def test_budpay_client_error_mapping(app):
    with pytest.raises(GatewayTimeoutError):
        BudPayClient(session=_Session(error=requests.exceptions.Timeout())).verify_transaction('x')

    with pytest.raises(GatewayError) as exc:
        BudPayClient(session=_Session(_Response(422, {'message': 'Invalid amount'}))).verify_transaction('x')
    assert exc.value.status_code == 422
    assert exc.value.message == 'Invalid amount'

    with pytest.raises(GatewayError) as exc:
        BudPayClient(session=_Session(error=requests.exceptions.ConnectionError())).verify_transaction('x')
    assert exc.value.status_code == 502


def test_budpay_client_requires_secret(app):
    app.config['BUDPAY_SECRET_KEY'] = None

    with pytest.raises(ConfigurationError):
        BudPayClient()
