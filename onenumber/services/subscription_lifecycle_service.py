import logging
from typing import Dict, Any, Optional

from onenumber.extensions import db
from onenumber.models import User, Admin, Subscription


class SubscriptionLifecycleService:
    """
    Side effects of subscription events.

    Callers mutate the subscription and then call the matching handler.
    Handlers return a result dict and never raise; notification and email
    failures are logged and reported in the result but do not undo the
    caller's change.
    """

    def __init__(self, notification_service=None, email_service=None):
        from onenumber.services import get_notification_service, get_email_service

        self.logger = logging.getLogger(__name__)
        self.notifications = notification_service or get_notification_service()
        self.emails = email_service or get_email_service()

    def _load(self, user_id, subscription_id, need_admin=True):
        user = db.session.get(User, user_id)
        subscription = db.session.get(Subscription, subscription_id)
        admin = Admin.query.filter_by(is_active=True).order_by(Admin.created_at).first() if need_admin else None

        missing = []
        if not user:
            missing.append('user')
        if need_admin and not admin:
            missing.append('admin')
        if not subscription:
            missing.append('subscription')

        return user, admin, subscription, missing

    def _missing(self, event, missing, user_id, subscription_id) -> Dict[str, Any]:
        self.logger.error(
            f"{event}: missing {', '.join(missing)} (user {user_id}, subscription {subscription_id})"
        )
        return {'success': False, 'error': f"Missing {', '.join(missing)}"}

    def _report(self, event, subscription_id, notification: Dict[str, Any],
                email_sent: Optional[bool]) -> Dict[str, Any]:
        if not notification['success']:
            self.logger.error(f"{event}: notification failed for {subscription_id}: {notification['error']}")
        if email_sent is False:
            self.logger.error(f"{event}: email failed for {subscription_id}")

        return {
            'success': True,
            'notified': notification['success'],
            'emailed': email_sent
        }

    # =========================================================================
    # EVENTS
    # =========================================================================

    def handle_subscription_created(self, user_id, subscription_id) -> Dict[str, Any]:
        try:
            user, admin, subscription, missing = self._load(user_id, subscription_id)
            if missing:
                return self._missing('Subscription created', missing, user_id, subscription_id)

            notification = self.notifications.notify_subscription_created(user, subscription)
            email_sent = self.emails.send_subscription_created_email(user, subscription, admin)

            self.logger.info(f"✅ Subscription created events handled for {subscription_id}")
            return self._report('Subscription created', subscription_id, notification, email_sent)

        except Exception as e:
            self.logger.error(f"❌ Error handling subscription creation for {subscription_id}: {e}")
            return {'success': False, 'error': str(e)}

    def handle_subscription_renewed(self, user_id, subscription_id) -> Dict[str, Any]:
        try:
            user, admin, subscription, missing = self._load(user_id, subscription_id)
            if missing:
                return self._missing('Subscription renewed', missing, user_id, subscription_id)

            notification = self.notifications.notify_subscription_renewed(user, subscription)
            email_sent = self.emails.send_subscription_renewed_email(user, subscription, admin)

            self.logger.info(f"✅ Subscription renewal events handled for {subscription_id}")
            return self._report('Subscription renewed', subscription_id, notification, email_sent)

        except Exception as e:
            self.logger.error(f"❌ Error handling subscription renewal for {subscription_id}: {e}")
            return {'success': False, 'error': str(e)}

    def handle_subscription_cancelled(self, user_id, subscription_id) -> Dict[str, Any]:
        try:
            user, admin, subscription, missing = self._load(user_id, subscription_id)
            if missing:
                return self._missing('Subscription cancelled', missing, user_id, subscription_id)

            notification = self.notifications.notify_subscription_cancelled(user, subscription)
            email_sent = self.emails.send_subscription_cancelled_email(user, subscription, admin)

            self.logger.info(f"✅ Subscription cancellation events handled for {subscription_id}")
            return self._report('Subscription cancelled', subscription_id, notification, email_sent)

        except Exception as e:
            self.logger.error(f"❌ Error handling subscription cancellation for {subscription_id}: {e}")
            return {'success': False, 'error': str(e)}

    def handle_subscription_expiring(self, user_id, subscription_id, days_remaining) -> Dict[str, Any]:
        """Send the renewal reminder once per subscription period"""
        try:
            user, _, subscription, missing = self._load(user_id, subscription_id, need_admin=False)
            if missing:
                return self._missing('Subscription expiring', missing, user_id, subscription_id)

            if subscription.renewal_reminder_sent:
                self.logger.info(f"Renewal reminder already sent for {subscription_id}")
                return {'success': True, 'skipped': True}

            notification = self.notifications.notify_subscription_expiring(user, subscription, days_remaining)
            email_sent = self.emails.send_subscription_expiring_email(user, subscription, days_remaining)

            subscription.renewal_reminder_sent = True
            db.session.commit()

            self.logger.info(f"✅ Expiration reminder sent for {subscription_id} ({days_remaining} days)")
            return self._report('Subscription expiring', subscription_id, notification, email_sent)

        except Exception as e:
            db.session.rollback()
            self.logger.error(f"❌ Error handling subscription expiring for {subscription_id}: {e}")
            return {'success': False, 'error': str(e)}

    def handle_subscription_expired(self, user_id, subscription_id) -> Dict[str, Any]:
        try:
            user, admin, subscription, missing = self._load(user_id, subscription_id)
            if missing:
                return self._missing('Subscription expired', missing, user_id, subscription_id)

            if subscription.status == 'expired':
                self.logger.info(f"Subscription {subscription_id} already expired")
                return {'success': True, 'skipped': True}

            subscription.status = 'expired'
            db.session.commit()

            notification = self.notifications.notify_subscription_expired(user, subscription)
            email_sent = self.emails.send_subscription_expired_email(user, subscription, admin)

            self.logger.info(f"✅ Subscription {subscription_id} marked as expired")
            return self._report('Subscription expired', subscription_id, notification, email_sent)

        except Exception as e:
            db.session.rollback()
            self.logger.error(f"❌ Error handling subscription expired for {subscription_id}: {e}")
            return {'success': False, 'error': str(e)}

    def handle_auto_renew_toggled(self, user_id, subscription_id, enabled) -> Dict[str, Any]:
        try:
            user, _, subscription, missing = self._load(user_id, subscription_id, need_admin=False)
            if missing:
                return self._missing('Auto-renew toggled', missing, user_id, subscription_id)

            notification = self.notifications.notify_auto_renew_toggled(user, subscription, enabled)
            return self._report('Auto-renew toggled', subscription_id, notification, None)

        except Exception as e:
            self.logger.error(f"❌ Error handling auto-renew toggle for {subscription_id}: {e}")
            return {'success': False, 'error': str(e)}
