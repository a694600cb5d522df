import pytest

from onenumber import create_app
from onenumber.extensions import db, mail

from tests.onenumber_test_utils import OneNumberTestUtils, FakeBudPayClient


@pytest.fixture()
def app():
    """Application with a fresh in-memory database per test."""
    app = create_app('testing')

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def outbox(app):
    """Emails sent during the test (Flask-Mail suppresses delivery when TESTING)."""
    with mail.record_messages() as messages:
        yield messages


@pytest.fixture()
def user(app):
    return OneNumberTestUtils.create_test_user('ada@example.com', first_name='Ada', last_name='Lovelace')


@pytest.fixture()
def other_user(app):
    return OneNumberTestUtils.create_test_user('grace@example.com', first_name='Grace', last_name='Hopper')


@pytest.fixture()
def admin(app):
    return OneNumberTestUtils.create_test_admin('admin@onenumber.test')


@pytest.fixture()
def user_headers(user):
    return OneNumberTestUtils.auth_headers(user)


@pytest.fixture()
def other_user_headers(other_user):
    return OneNumberTestUtils.auth_headers(other_user)


@pytest.fixture()
def admin_headers(admin):
    return OneNumberTestUtils.auth_headers(admin)


@pytest.fixture()
def phone_number(app):
    return OneNumberTestUtils.create_test_phone_number('0700-123-4633')


@pytest.fixture()
def budpay(monkeypatch):
    """Replace the BudPay client used by PaymentService with a recording fake."""
    fake = FakeBudPayClient()
    monkeypatch.setattr('onenumber.services.payment_service.BudPayClient', lambda *a, **kw: fake)
    return fake
