import logging
from typing import Dict, Any, Optional

from onenumber.extensions import db
from onenumber.models import Notification, Admin
from onenumber.models.notification import DEFAULT_CHANNELS


class NotificationService:
    """
    In-app notifications for users and admins.

    Creation methods never raise: they return a result dict with
    `success` and either the created notification(s) or an `error`,
    so callers decide what to log.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    # =========================================================================
    # CREATION
    # =========================================================================

    def create_user_notification(self, user_id, title, message, category='system',
                                 type='info', related_id=None) -> Dict[str, Any]:
        try:
            notification = Notification(
                recipient_id=user_id,
                recipient_type='user',
                title=title,
                message=message,
                category=category,
                type=type,
                related_id=related_id,
                is_read=False,
                channels=list(DEFAULT_CHANNELS)
            )
            db.session.add(notification)
            db.session.commit()

            return {'success': True, 'notification': notification}

        except Exception as e:
            db.session.rollback()
            self.logger.error(f"Failed to create notification for user {user_id}: {e}")
            return {'success': False, 'error': str(e)}

    def create_admin_notification(self, title, message, category='system',
                                  type='info', related_id=None) -> Dict[str, Any]:
        """Create one notification per active admin"""
        try:
            admins = Admin.query.filter_by(is_active=True).all()
            notifications = []

            for admin in admins:
                notification = Notification(
                    recipient_id=admin.id,
                    recipient_type='admin',
                    title=title,
                    message=message,
                    category=category,
                    type=type,
                    related_id=related_id,
                    is_read=False,
                    channels=list(DEFAULT_CHANNELS)
                )
                db.session.add(notification)
                notifications.append(notification)

            db.session.commit()

            return {'success': True, 'notifications': notifications}

        except Exception as e:
            db.session.rollback()
            self.logger.error(f"Failed to create admin notifications: {e}")
            return {'success': False, 'error': str(e)}

    # =========================================================================
    # QUERIES AND RECIPIENT ACTIONS
    # =========================================================================

    def get_notifications(self, recipient_id, recipient_type, limit=10, offset=0,
                          include_read=False) -> Dict[str, Any]:
        base = Notification.query.filter_by(recipient_id=recipient_id, recipient_type=recipient_type)

        listing = base if include_read else base.filter_by(is_read=False)
        notifications = listing.order_by(Notification.created_at.desc()) \
            .offset(offset).limit(limit).all()

        return {
            'notifications': [n.to_dict() for n in notifications],
            'unread_count': base.filter_by(is_read=False).count(),
            'total': listing.count()
        }

    def mark_notification_as_read(self, notification_id, recipient_id, recipient_type) -> bool:
        notification = Notification.query.filter_by(
            id=notification_id,
            recipient_id=recipient_id,
            recipient_type=recipient_type
        ).first()

        if not notification:
            return False

        notification.mark_read()
        db.session.commit()
        return True

    def mark_all_notifications_as_read(self, recipient_id, recipient_type) -> int:
        updated = Notification.query.filter_by(
            recipient_id=recipient_id,
            recipient_type=recipient_type,
            is_read=False
        ).update({'is_read': True})
        db.session.commit()
        return updated

    def delete_notification(self, notification_id, recipient_id, recipient_type) -> bool:
        deleted = Notification.query.filter_by(
            id=notification_id,
            recipient_id=recipient_id,
            recipient_type=recipient_type
        ).delete()
        db.session.commit()
        return deleted > 0

    # =========================================================================
    # DOMAIN EVENT HELPERS
    # =========================================================================

    def _combine(self, *results) -> Dict[str, Any]:
        errors = [r['error'] for r in results if not r['success']]
        return {'success': not errors, 'error': '; '.join(errors) if errors else None}

    def notify_user_registered(self, user) -> Dict[str, Any]:
        return self._combine(
            self.create_user_notification(
                user.id,
                'Welcome to our platform!',
                'Your account has been successfully created. Explore our services to get started.',
                'account',
                'success'
            ),
            self.create_admin_notification(
                'New User Registration',
                f"{user.first_name} {user.last_name} ({user.email}) has joined the platform.",
                'user',
                'info'
            )
        )

    def notify_user_activated(self, user) -> Dict[str, Any]:
        return self._combine(
            self.create_user_notification(
                user.id,
                'Account Activated',
                'Your account has been successfully activated. You can now access all platform features.',
                'account',
                'success'
            ),
            self.create_admin_notification(
                'User Account Activated',
                f"{user.first_name} {user.last_name}'s account has been activated.",
                'user',
                'info',
                user.id
            )
        )

    def notify_subscription_created(self, user, subscription) -> Dict[str, Any]:
        number = _number_label(subscription, 'your subscription')
        return self._combine(
            self.create_user_notification(
                user.id,
                'Subscription Activated',
                f"Your subscription for {number} has been successfully activated.",
                'subscription',
                'success',
                subscription.id
            ),
            self.create_admin_notification(
                'New Subscription',
                f"{user.first_name} {user.last_name} has subscribed to "
                f"{_number_label(subscription, 'Unknown number')} ({subscription.plan}).",
                'subscription',
                'info',
                subscription.id
            )
        )

    def notify_subscription_renewed(self, user, subscription) -> Dict[str, Any]:
        return self._combine(
            self.create_user_notification(
                user.id,
                'Subscription Renewed',
                f"Your subscription for {_number_label(subscription, 'your subscription')} has been "
                f"successfully renewed until {_format_date(subscription.end_date)}.",
                'subscription',
                'success',
                subscription.id
            ),
            self.create_admin_notification(
                'Subscription Renewed',
                f"{user.first_name} {user.last_name} has renewed their subscription for "
                f"{_number_label(subscription, 'Unknown number')}.",
                'subscription',
                'info',
                subscription.id
            )
        )

    def notify_subscription_expiring(self, user, subscription, days_remaining) -> Dict[str, Any]:
        return self.create_user_notification(
            user.id,
            'Subscription Expiring Soon',
            f"Your subscription for {_number_label(subscription, 'your subscription')} will expire in "
            f"{days_remaining} days. Renew now to avoid service interruption.",
            'subscription',
            'warning',
            subscription.id
        )

    def notify_subscription_expired(self, user, subscription) -> Dict[str, Any]:
        return self._combine(
            self.create_user_notification(
                user.id,
                'Subscription Expired',
                f"Your subscription for {_number_label(subscription, 'your subscription')} has expired. "
                "Renew now to continue using the service.",
                'subscription',
                'error',
                subscription.id
            ),
            self.create_admin_notification(
                'Subscription Expired',
                f"{user.first_name} {user.last_name}'s subscription for "
                f"{_number_label(subscription, 'Unknown number')} has expired.",
                'subscription',
                'warning',
                subscription.id
            )
        )

    def notify_subscription_cancelled(self, user, subscription) -> Dict[str, Any]:
        return self._combine(
            self.create_user_notification(
                user.id,
                'Subscription Cancelled',
                f"Your subscription for {_number_label(subscription, 'your subscription')} has been "
                f"cancelled. It will remain active until {_format_date(subscription.end_date)}.",
                'subscription',
                'info',
                subscription.id
            ),
            self.create_admin_notification(
                'Subscription Cancelled',
                f"{user.first_name} {user.last_name} has cancelled their subscription for "
                f"{_number_label(subscription, 'Unknown number')}.",
                'subscription',
                'warning',
                subscription.id
            )
        )

    def notify_auto_renew_toggled(self, user, subscription, enabled) -> Dict[str, Any]:
        state = 'enabled' if enabled else 'disabled'
        return self.create_user_notification(
            user.id,
            'Auto-renewal Settings Updated',
            f"Auto-renewal has been {state} for your subscription to "
            f"{_number_label(subscription, 'your number')}.",
            'subscription',
            'info',
            subscription.id
        )


def _number_label(subscription, fallback) -> str:
    phone_number = getattr(subscription, 'phone_number', None)
    return phone_number.number if phone_number else fallback


def _format_date(value) -> Optional[str]:
    return value.strftime('%B %d, %Y') if value else 'the end of the current period'
