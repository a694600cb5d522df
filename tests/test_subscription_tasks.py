from datetime import datetime, timedelta

from celery.schedules import crontab

from onenumber.extensions import db
from onenumber.models import Notification
from onenumber.tasks import (
    check_and_process_expired_subscriptions,
    check_and_process_expiring_subscriptions,
    release_expired_reservations,
    get_beat_schedule,
)

from tests.onenumber_test_utils import OneNumberTestUtils


def _lapsed_subscription(user, phone_number):
    now = datetime.utcnow()
    return OneNumberTestUtils.create_test_subscription(
        user, phone_number,
        start_date=now - timedelta(days=50),
        end_date=now - timedelta(hours=1)
    )


def test_expiry_sweep_expires_once(admin, user, phone_number, outbox):
    subscription = _lapsed_subscription(user, phone_number)
    OneNumberTestUtils.create_test_subscription(user, OneNumberTestUtils.create_test_phone_number('0700-444-5555'))

    result = check_and_process_expired_subscriptions()

    assert result == {'success': True, 'subscriptions_checked': 1, 'subscriptions_expired': 1}
    assert subscription.status == 'expired'

    user_notes = Notification.query.filter_by(recipient_id=user.id, recipient_type='user').all()
    assert [n.title for n in user_notes] == ['Subscription Expired']
    assert Notification.query.filter_by(recipient_id=admin.id, recipient_type='admin').count() == 1
    assert {m.subject for m in outbox} == {'Your Subscription Has Expired', 'Subscription Expired: 0700-123-4633'}

    result = check_and_process_expired_subscriptions()
    assert result['subscriptions_checked'] == 0
    assert Notification.query.filter_by(recipient_id=user.id).count() == 1


def test_expiry_sweep_includes_cancelled(admin, user, phone_number):
    subscription = _lapsed_subscription(user, phone_number)
    subscription.cancel()
    db.session.commit()

    result = check_and_process_expired_subscriptions()

    assert result['subscriptions_expired'] == 1
    assert subscription.status == 'expired'


def test_reminder_sweep_sends_once_per_period(user, phone_number, outbox):
    now = datetime.utcnow().replace(hour=9, minute=0, second=0, microsecond=0)
    subscription = OneNumberTestUtils.create_test_subscription(
        user, phone_number,
        start_date=now - timedelta(days=38),
        end_date=now + timedelta(days=7, hours=1)
    )

    result = check_and_process_expiring_subscriptions(now=now)

    assert result['reminders_sent'] == 1
    assert result['by_days'] == {7: 1, 3: 0, 1: 0}
    assert subscription.renewal_reminder_sent is True

    notification = Notification.query.filter_by(recipient_id=user.id).one()
    assert notification.title == 'Subscription Expiring Soon'
    assert 'expire in 7 days' in notification.message
    assert [m.subject for m in outbox] == ['Your Subscription Expires in 7 Days']

    result = check_and_process_expiring_subscriptions(now=now)
    assert result['reminders_sent'] == 0
    assert Notification.query.filter_by(recipient_id=user.id).count() == 1


def test_renewal_rearms_reminder(user, phone_number):
    now = datetime.utcnow().replace(hour=9, minute=0, second=0, microsecond=0)
    subscription = OneNumberTestUtils.create_test_subscription(
        user, phone_number,
        start_date=now - timedelta(days=44),
        end_date=now + timedelta(days=1, hours=1),
        renewal_reminder_sent=True
    )

    assert check_and_process_expiring_subscriptions(now=now)['reminders_sent'] == 0

    subscription.renew('R-renew')
    db.session.commit()
    assert subscription.renewal_reminder_sent is False


def test_reservation_sweep_is_opt_in(app, user, phone_number):
    phone_number.reserve(user.id)
    phone_number.reserved_until = datetime.utcnow() - timedelta(minutes=1)
    db.session.commit()

    result = release_expired_reservations()
    assert result['skipped'] is True
    assert phone_number.status == 'reserved'

    app.config['RESERVATION_SWEEP_ENABLED'] = True
    result = release_expired_reservations()
    assert result['released'] == ['0700-123-4633']
    assert phone_number.status == 'available'


def test_beat_schedule():
    schedule = get_beat_schedule()

    assert set(schedule) == {'expire-subscriptions-hourly', 'send-expiration-reminders-daily'}
    assert schedule['expire-subscriptions-hourly']['schedule'] == crontab(minute=0)
    assert schedule['send-expiration-reminders-daily']['schedule'] == crontab(hour=9, minute=0)

    assert 'release-expired-reservations' in get_beat_schedule(reservation_sweep_enabled=True)
