# onenumber/tasks/subscription_tasks.py
"""
Subscription scheduler jobs.

Celery beat is the only scheduler: run exactly one beat process. The
sweeps are plain functions so they can also be called from the CLI and
from tests inside an app context.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Any, Optional

from celery.schedules import crontab
from flask import current_app

from onenumber.celery_app import celery_app
from onenumber.extensions import db
from onenumber.models import Subscription

logger = logging.getLogger(__name__)

REMINDER_DAYS = (7, 3, 1)


def _day_window(day: datetime):
    start = day.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def check_and_process_expired_subscriptions(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Expire every subscription whose end date has passed"""
    from onenumber.services import get_subscription_lifecycle_service

    now = now or datetime.utcnow()
    results = {'success': True, 'subscriptions_checked': 0, 'subscriptions_expired': 0}

    try:
        expired = Subscription.query.filter(
            Subscription.end_date < now,
            Subscription.status != 'expired'
        ).all()
        results['subscriptions_checked'] = len(expired)

        lifecycle = get_subscription_lifecycle_service()
        for subscription in expired:
            outcome = lifecycle.handle_subscription_expired(subscription.user_id, subscription.id)
            if outcome['success'] and not outcome.get('skipped'):
                results['subscriptions_expired'] += 1

        logger.info(
            f"✅ Expiry sweep: {results['subscriptions_expired']}/{results['subscriptions_checked']} expired"
        )

    except Exception as e:
        db.session.rollback()
        logger.error(f"❌ Error checking expired subscriptions: {e}")
        results['success'] = False
        results['error'] = str(e)

    return results


def check_and_process_expiring_subscriptions(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Send renewal reminders for subscriptions ending 7, 3 and 1 days from now"""
    from onenumber.services import get_subscription_lifecycle_service

    now = now or datetime.utcnow()
    results = {'success': True, 'reminders_sent': 0, 'by_days': {}}

    try:
        lifecycle = get_subscription_lifecycle_service()

        for days in REMINDER_DAYS:
            window_start, window_end = _day_window(now + timedelta(days=days))

            expiring = Subscription.query.filter(
                Subscription.status == 'active',
                Subscription.end_date >= window_start,
                Subscription.end_date < window_end,
                Subscription.renewal_reminder_sent == False  # noqa: E712
            ).all()

            sent = 0
            for subscription in expiring:
                outcome = lifecycle.handle_subscription_expiring(subscription.user_id, subscription.id, days)
                if outcome['success'] and not outcome.get('skipped'):
                    sent += 1

            results['by_days'][days] = sent
            results['reminders_sent'] += sent

        logger.info(f"✅ Reminder sweep: {results['reminders_sent']} reminders sent")

    except Exception as e:
        db.session.rollback()
        logger.error(f"❌ Error checking expiring subscriptions: {e}")
        results['success'] = False
        results['error'] = str(e)

    return results


def run_expired_subscriptions_check() -> Dict[str, Any]:
    """One-off expiry sweep, used at deploy time and from the CLI"""
    logger.info("Running expired subscriptions check")
    return check_and_process_expired_subscriptions()


def release_expired_reservations() -> Dict[str, Any]:
    from onenumber.services import get_phone_number_service

    if not current_app.config.get('RESERVATION_SWEEP_ENABLED'):
        return {'success': True, 'skipped': True, 'released': []}

    try:
        return get_phone_number_service().release_expired_reservations()
    except Exception as e:
        db.session.rollback()
        logger.error(f"❌ Error releasing expired reservations: {e}")
        return {'success': False, 'error': str(e), 'released': []}


# =============================================================================
# CELERY TASKS
# =============================================================================

@celery_app.task(name='onenumber.tasks.subscription_tasks.expire_subscriptions')
def expire_subscriptions():
    return check_and_process_expired_subscriptions()


@celery_app.task(name='onenumber.tasks.subscription_tasks.send_expiration_reminders')
def send_expiration_reminders():
    return check_and_process_expiring_subscriptions()


@celery_app.task(name='onenumber.tasks.subscription_tasks.release_reservations')
def release_reservations():
    return release_expired_reservations()


# =============================================================================
# CELERY BEAT SCHEDULE
# =============================================================================

SUBSCRIPTION_CELERY_BEAT_SCHEDULE = {
    'expire-subscriptions-hourly': {
        'task': 'onenumber.tasks.subscription_tasks.expire_subscriptions',
        'schedule': crontab(minute=0),
        'options': {'queue': 'subscriptions'}
    },
    'send-expiration-reminders-daily': {
        'task': 'onenumber.tasks.subscription_tasks.send_expiration_reminders',
        'schedule': crontab(hour=9, minute=0),
        'options': {'queue': 'subscriptions'}
    }
}

RESERVATION_CELERY_BEAT_SCHEDULE = {
    'release-expired-reservations': {
        'task': 'onenumber.tasks.subscription_tasks.release_reservations',
        'schedule': crontab(minute='*/5'),
        'options': {'queue': 'subscriptions'}
    }
}
