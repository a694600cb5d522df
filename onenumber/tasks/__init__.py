"""
Celery task definitions.

- Subscription tasks: expiry sweep, renewal reminders, reservation release
"""

from .subscription_tasks import (
    expire_subscriptions,
    send_expiration_reminders,
    release_reservations,
    check_and_process_expired_subscriptions,
    check_and_process_expiring_subscriptions,
    run_expired_subscriptions_check,
    release_expired_reservations,
    SUBSCRIPTION_CELERY_BEAT_SCHEDULE,
    RESERVATION_CELERY_BEAT_SCHEDULE,
)


def get_beat_schedule(reservation_sweep_enabled=False):
    schedule = dict(SUBSCRIPTION_CELERY_BEAT_SCHEDULE)
    if reservation_sweep_enabled:
        schedule.update(RESERVATION_CELERY_BEAT_SCHEDULE)
    return schedule


__all__ = [
    'expire_subscriptions',
    'send_expiration_reminders',
    'release_reservations',
    'check_and_process_expired_subscriptions',
    'check_and_process_expiring_subscriptions',
    'run_expired_subscriptions_check',
    'release_expired_reservations',
    'get_beat_schedule',
]
