import pytest

from onenumber.extensions import mail
from onenumber.services.email_service import EmailService, EmailTemplateCache

from tests.onenumber_test_utils import OneNumberTestUtils


@pytest.fixture()
def subscription(user, phone_number):
    return OneNumberTestUtils.create_test_subscription(user, phone_number, plan='premium')


def test_template_cache_compiles_each_template_once():
    cache = EmailTemplateCache()

    first = cache.get('subscription-created')
    second = cache.get('subscription-created')

    assert first is second
    assert 'subscription-created' in cache
    assert len(cache) == 1


def test_app_shares_one_template_cache(app):
    assert EmailService().templates is EmailService().templates
    assert EmailService().templates is app.extensions['email_templates']


def test_expiring_email_content(app, user, subscription, outbox):
    sent = EmailService().send_subscription_expiring_email(user, subscription, 3)

    assert sent is True
    message = outbox[0]
    assert message.subject == 'Your Subscription Expires in 3 Days'
    assert message.recipients == [user.email]
    assert '0700-123-4633' in message.html
    assert f'/dashboard/subscriptions/{subscription.id}/renew' in message.html


def test_admin_copy_falls_back_to_configured_address(app, user, subscription, outbox):
    EmailService().send_subscription_created_email(user, subscription, None)

    admin_copy = next(m for m in outbox if m.subject.startswith('New Subscription'))
    assert admin_copy.recipients == ['admin@onenumber.test']
    assert user.email in admin_copy.html


def test_send_failure_returns_false(app, monkeypatch, user, subscription):
    def broken_send(message):
        raise ConnectionRefusedError('smtp down')

    monkeypatch.setattr(mail, 'send', broken_send)

    assert EmailService().send_subscription_renewed_email(user, subscription, None) is False
