import logging
from datetime import datetime
from typing import Dict, Any, List, Optional

from onenumber.extensions import db
from onenumber.exceptions import ValidationError, NotFoundError, AuthorizationError, ConflictError
from onenumber.models import (
    User, PhoneNumber, Subscription, PaymentTransaction,
    SUBSCRIPTION_PLANS, SUBSCRIPTION_STATUSES, PAYMENT_METHODS, PLAN_PRICES, plan_duration
)
from onenumber.utils.validators import is_valid_id


class SubscriptionService:
    """Subscription operations for users and admins; events go through the lifecycle service"""

    def __init__(self, lifecycle_service=None):
        from onenumber.services import get_subscription_lifecycle_service

        self.logger = logging.getLogger(__name__)
        self.lifecycle = lifecycle_service or get_subscription_lifecycle_service()

    def _get(self, subscription_id) -> Subscription:
        if not is_valid_id(subscription_id):
            raise ValidationError('Invalid subscription ID')

        subscription = db.session.get(Subscription, subscription_id)
        if not subscription:
            raise NotFoundError('Subscription not found')
        return subscription

    def _get_owned(self, principal, subscription_id) -> Subscription:
        subscription = self._get(subscription_id)
        if principal.role != 'admin' and subscription.user_id != principal.id:
            raise AuthorizationError('You are not authorized to access this subscription')
        return subscription

    def _reactivate_number(self, subscription):
        """A lapsed or cancelled subscription can only come back if the number is still free for its holder"""
        from onenumber.services import get_phone_number_service

        other_active = Subscription.query.filter(
            Subscription.user_id == subscription.user_id,
            Subscription.number_id == subscription.number_id,
            Subscription.status == 'active',
            Subscription.id != subscription.id
        ).first()
        if other_active:
            raise ConflictError('Active subscription already exists for this number', status_code=400)

        phone_number = subscription.phone_number
        if phone_number.user_id and phone_number.user_id != subscription.user_id:
            raise ConflictError('Phone number is already assigned to another user', status_code=400)

        get_phone_number_service().update_status(phone_number.id, 'active', subscription.user_id, commit=False)

    def _log_event(self, event, result):
        if not result['success']:
            self.logger.warning(f"{event} side effects incomplete: {result.get('error')}")

    # =========================================================================
    # USER OPERATIONS
    # =========================================================================

    def create_subscription(self, user, number_id, plan, payment_method, payment_reference) -> Subscription:
        """Direct subscription for an already-settled payment reference"""
        from onenumber.services import get_phone_number_service

        if not all([number_id, plan, payment_method, payment_reference]):
            raise ValidationError('Missing required fields')
        if plan not in SUBSCRIPTION_PLANS:
            raise ValidationError('Invalid plan')
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError('Invalid payment method')

        phone_number = db.session.get(PhoneNumber, number_id)
        if not phone_number:
            raise NotFoundError('Number not found')

        existing = Subscription.query.filter_by(user_id=user.id, number_id=number_id, status='active').first()
        if existing:
            raise ConflictError('Active subscription already exists for this number', status_code=400)

        now = datetime.utcnow()
        try:
            subscription = Subscription(
                user_id=user.id,
                number_id=number_id,
                plan=plan,
                status='active',
                start_date=now,
                end_date=now + plan_duration(plan),
                auto_renew=True,
                price=PLAN_PRICES[plan],
                payment_method=payment_method,
                payment_reference=payment_reference,
                minutes_used=0,
                renewal_reminder_sent=False
            )
            db.session.add(subscription)

            get_phone_number_service().update_status(number_id, 'active', user.id, commit=False)
            db.session.commit()

        except Exception:
            db.session.rollback()
            raise

        self.logger.info(f"Subscription {subscription.id} created for user {user.id}")
        self._log_event('Subscription created', self.lifecycle.handle_subscription_created(user.id, subscription.id))
        return subscription

    def renew_subscription(self, principal, subscription_id, payment_reference) -> Subscription:
        if not payment_reference:
            raise ValidationError('Payment reference is required')

        subscription = self._get_owned(principal, subscription_id)
        if subscription.status != 'active':
            self._reactivate_number(subscription)

        subscription.renew(payment_reference)
        db.session.commit()

        self.logger.info(f"Subscription {subscription.id} renewed until {subscription.end_date.isoformat()}")
        self._log_event('Subscription renewed',
                        self.lifecycle.handle_subscription_renewed(subscription.user_id, subscription.id))
        return subscription

    def cancel_subscription(self, principal, subscription_id) -> Subscription:
        subscription = self._get_owned(principal, subscription_id)
        subscription.cancel()
        db.session.commit()

        self.logger.info(f"Subscription {subscription.id} cancelled")
        self._log_event('Subscription cancelled',
                        self.lifecycle.handle_subscription_cancelled(subscription.user_id, subscription.id))
        return subscription

    def toggle_auto_renew(self, principal, subscription_id, auto_renew) -> Subscription:
        if auto_renew is None:
            raise ValidationError('auto_renew field is required')

        subscription = self._get_owned(principal, subscription_id)
        changed = subscription.auto_renew != bool(auto_renew)
        subscription.auto_renew = bool(auto_renew)
        db.session.commit()

        if changed:
            self._log_event('Auto-renew toggled', self.lifecycle.handle_auto_renew_toggled(
                subscription.user_id, subscription.id, subscription.auto_renew
            ))
        return subscription

    def get_user_subscriptions(self, user_id) -> List[Subscription]:
        return Subscription.query.filter_by(user_id=user_id) \
            .order_by(Subscription.created_at.desc()).all()

    def get_user_subscription(self, principal, subscription_id) -> Subscription:
        return self._get_owned(principal, subscription_id)

    # =========================================================================
    # ADMIN OPERATIONS
    # =========================================================================

    def get_all_subscriptions(self, status=None, plan=None, auto_renew: Optional[bool] = None) -> List[Subscription]:
        query = Subscription.query

        if status:
            query = query.filter(Subscription.status == status)
        if plan:
            query = query.filter(Subscription.plan == plan)
        if auto_renew is not None:
            query = query.filter(Subscription.auto_renew == auto_renew)

        return query.order_by(Subscription.created_at.desc()).all()

    def get_subscription_with_payment(self, subscription_id) -> Dict[str, Any]:
        subscription = self._get(subscription_id)

        transaction = None
        if subscription.payment_reference:
            transaction = PaymentTransaction.query.filter_by(reference=subscription.payment_reference).first()

        return {
            'subscription': subscription.to_dict(include_relationships=True),
            'payment_transaction': transaction.to_dict() if transaction else None
        }

    def update_subscription(self, subscription_id, data: Dict[str, Any]) -> Subscription:
        subscription = self._get(subscription_id)

        if data.get('status') is not None:
            if data['status'] not in SUBSCRIPTION_STATUSES:
                raise ValidationError('Invalid status')
            subscription.status = data['status']

        if data.get('plan') is not None:
            if data['plan'] not in SUBSCRIPTION_PLANS:
                raise ValidationError('Invalid plan')
            subscription.plan = data['plan']

        if data.get('end_date') is not None:
            if data['end_date'] <= subscription.start_date:
                raise ValidationError('End date must be after start date')
            subscription.end_date = data['end_date']

        if data.get('minutes_used') is not None:
            if data['minutes_used'] < 0:
                raise ValidationError('Minutes used cannot be negative')
            subscription.minutes_used = data['minutes_used']

        if data.get('price') is not None:
            if data['price'] < 0:
                raise ValidationError('Price must be a non-negative number')
            subscription.price = data['price']

        db.session.commit()
        self.logger.info(f"Subscription {subscription.id} updated by admin")
        return subscription

    def delete_subscription(self, subscription_id) -> None:
        subscription = self._get(subscription_id)
        db.session.delete(subscription)
        db.session.commit()
        self.logger.info(f"Subscription {subscription_id} deleted")

    def get_subscriptions_for_user(self, user_id) -> List[Subscription]:
        if not is_valid_id(user_id):
            raise ValidationError('Invalid user ID')
        if not db.session.get(User, user_id):
            raise NotFoundError('User not found')
        return self.get_user_subscriptions(user_id)
