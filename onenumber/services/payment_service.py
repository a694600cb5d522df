import logging
import secrets
from datetime import datetime, timezone
from typing import Dict, Any

from onenumber.extensions import db
from onenumber.exceptions import (
    ValidationError, AuthenticationError, AuthorizationError, NotFoundError,
    ConflictError, ConfigurationError, GatewayError
)
from onenumber.models import PaymentLink, PaymentTransaction, PhoneNumber, Subscription, plan_duration
from onenumber.models.payment import TRANSACTION_STATUSES
from onenumber.utils.budpay_client import BudPayClient
from onenumber.utils.validators import validate_email

# Plan prices in NGN
PAYMENT_PLAN_AMOUNTS = {
    'lite': 16500,
    'standard': 33000,
    'premium': 82500,
}

PAYMENT_CURRENCY = 'NGN'
REFERENCE_PREFIX = 'OneNumber-'


class PaymentService:
    """Payment links, gateway verification and the payment-to-subscription handoff"""

    def __init__(self, gateway=None, lifecycle_service=None):
        self.logger = logging.getLogger(__name__)
        self._gateway = gateway
        self._lifecycle = lifecycle_service

    @property
    def gateway(self):
        if self._gateway is None:
            self._gateway = BudPayClient()
        return self._gateway

    @property
    def lifecycle(self):
        if self._lifecycle is None:
            from onenumber.services import get_subscription_lifecycle_service
            self._lifecycle = get_subscription_lifecycle_service()
        return self._lifecycle

    # =========================================================================
    # PAYMENT LINKS
    # =========================================================================

    def create_payment_link(self, user, plan_type, frontend_url, description=None,
                            client_ip=None, user_agent=None) -> Dict[str, Any]:
        if not frontend_url:
            raise ConfigurationError('Server configuration error')

        amount = PAYMENT_PLAN_AMOUNTS.get(plan_type)
        if amount is None:
            raise ValidationError('Invalid plan type')

        if not validate_email(user.email):
            raise ValidationError('Invalid email format')

        full_name = user.full_name or 'Customer'
        redirect_url = f"{frontend_url.rstrip('/')}/payment-success/"
        reference = f"{REFERENCE_PREFIX}{secrets.token_hex(16)}"

        body = self.gateway.initialize_transaction(
            email=user.email,
            amount=amount,
            currency=PAYMENT_CURRENCY,
            callback=redirect_url,
            reference=reference,
            full_name=full_name
        )

        data = (body or {}).get('data') or {}
        if not all(data.get(key) for key in ('authorization_url', 'access_code', 'reference')):
            self.logger.error(f"Invalid initialize response for {reference}: {body}")
            raise GatewayError('Invalid response from payment provider', status_code=500)

        payment_link = PaymentLink(
            user_id=user.id,
            reference_id=data['reference'],
            amount=amount,
            currency=PAYMENT_CURRENCY,
            name=full_name,
            description=description or f"Payment for {plan_type} plan",
            redirect_url=redirect_url,
            authorization_url=data['authorization_url'],
            access_code=data['access_code'],
            link_metadata={
                'plan_type': plan_type,
                'client_ip': client_ip or 'unknown',
                'user_agent': (user_agent or '')[:255]
            }
        )
        db.session.add(payment_link)
        db.session.commit()

        self.logger.info(f"Payment link {payment_link.reference_id} created for user {user.id}")
        return {
            'authorization_url': data['authorization_url'],
            'access_code': data['access_code'],
            'reference': data['reference']
        }

    def cancel_payment(self, principal, reference) -> PaymentLink:
        if not reference:
            raise ValidationError('Reference ID is required')

        payment_link = PaymentLink.query.filter_by(reference_id=reference).first()
        if not payment_link:
            raise NotFoundError('Payment not found')
        if principal.role != 'admin' and payment_link.user_id != principal.id:
            raise AuthorizationError('Unauthorized: You do not have permission to access this payment')
        if payment_link.status == 'completed':
            raise ConflictError('Payment has already been completed', status_code=400)

        payment_link.mark_cancelled()
        db.session.commit()

        self.logger.info(f"Payment link {reference} cancelled")
        return payment_link

    # =========================================================================
    # VERIFICATION
    # =========================================================================

    def verify_payment(self, principal, reference) -> Dict[str, Any]:
        """Return the stored transaction for `reference`, verifying it with the gateway first if needed"""
        if not reference:
            raise ValidationError('Reference ID is required')
        if principal is None:
            raise AuthenticationError('Authentication required')

        is_admin = principal.role == 'admin'

        existing = PaymentTransaction.query.filter_by(reference=reference).first()
        if existing:
            if not is_admin and not existing.is_owned_by(principal):
                raise AuthorizationError('You are not authorized to access this transaction information')
            return {'transaction': existing.to_dict(), 'created': False}

        body = self.gateway.verify_transaction(reference) or {}

        if not body.get('status'):
            raise NotFoundError(body.get('message') or 'Transaction verification failed')

        data = body.get('data')
        customer = body.get('customer') or (data or {}).get('customer')
        if not data or not customer:
            raise ValidationError('Invalid response from payment provider')

        customer_email = str(customer.get('email') or '')
        if not is_admin and customer_email.lower() != (principal.email or '').lower():
            raise AuthorizationError('You are not authorized to verify this transaction')

        try:
            amount = float(data.get('amount'))
            requested_amount = float(data.get('requested_amount'))
            fees = float(data.get('fees') or 0)
        except (TypeError, ValueError):
            raise ValidationError('Invalid payment data received from provider')

        if data.get('status') not in TRANSACTION_STATUSES:
            raise ValidationError('Invalid payment data received from provider')

        now = datetime.utcnow()
        transaction = PaymentTransaction(
            reference=str(data.get('reference') or reference),
            status=str(data.get('status')),
            amount=amount,
            requested_amount=requested_amount,
            fees=fees,
            currency=str(data.get('currency') or PAYMENT_CURRENCY),
            transaction_date=_parse_datetime(data.get('transaction_date')) or now,
            domain=_optional_str(data.get('domain')),
            gateway_response=_optional_str(data.get('gateway_response')),
            channel=_optional_str(data.get('channel')),
            ip_address=_optional_str(data.get('ip_address')),
            plan=_optional_str(data.get('plan')),
            customer_id=_optional_str(customer.get('id')),
            customer_code=_optional_str(customer.get('customer_code')),
            customer_first_name=_optional_str(customer.get('first_name')),
            customer_last_name=_optional_str(customer.get('last_name')),
            customer_email=customer_email,
            user_id=None if is_admin else principal.id,
            verified=True,
            verified_at=now,
            verified_by=principal.id
        )
        db.session.add(transaction)
        db.session.commit()

        self.logger.info(f"✅ Payment {transaction.reference} verified by {principal.id}")
        return {
            'transaction': {
                'id': transaction.id,
                'reference': transaction.reference,
                'status': transaction.status,
                'amount': amount,
                'currency': transaction.currency,
                'transaction_date': transaction.transaction_date.isoformat(),
                'requested_amount': requested_amount,
                'customer': {'email': transaction.customer_email},
                'verified': transaction.verified,
                'verified_at': transaction.verified_at.isoformat()
            },
            'created': True
        }

    # =========================================================================
    # PAYMENT -> SUBSCRIPTION HANDOFF
    # =========================================================================

    def complete_payment(self, user, reference, number_id) -> Dict[str, Any]:
        """
        Turn a paid link into an active subscription on `number_id`.

        The link update, the new subscription and the number activation
        commit together; the Created event runs after the commit and cannot
        undo it.
        """
        from onenumber.services import get_phone_number_service

        if not reference:
            raise ValidationError('Reference ID is required')
        if not number_id:
            raise ValidationError('Phone number ID is required')
        if user is None:
            raise AuthenticationError('Unauthorized: User must be logged in')

        payment_link = PaymentLink.query.filter_by(reference_id=reference).first()
        if not payment_link:
            raise NotFoundError('Payment not found')
        if payment_link.user_id != user.id:
            raise AuthorizationError('Unauthorized: You do not have permission to access this payment')
        if payment_link.status == 'cancelled':
            raise ValidationError('Payment has been cancelled')

        phone_number = db.session.get(PhoneNumber, number_id)
        if not phone_number:
            raise NotFoundError('Phone number not found')

        if phone_number.status == 'reserved' and phone_number.user_id and phone_number.user_id != user.id:
            raise AuthorizationError('This phone number is reserved for another user')

        if phone_number.status not in ('available', 'reserved'):
            raise ValidationError('Phone number is not available for subscription')

        existing = Subscription.query.filter_by(user_id=user.id, number_id=number_id, status='active').first()
        if existing:
            raise ConflictError('Active subscription already exists for this number', status_code=400)

        plan = payment_link.plan_type
        now = datetime.utcnow()

        try:
            payment_link.mark_completed()

            subscription = Subscription(
                user_id=user.id,
                number_id=number_id,
                plan=plan,
                status='active',
                start_date=now,
                end_date=now + plan_duration(plan),
                auto_renew=True,
                price=payment_link.amount,
                payment_method='card',
                payment_reference=reference,
                minutes_used=0,
                renewal_reminder_sent=False
            )
            db.session.add(subscription)

            get_phone_number_service().update_status(number_id, 'active', user.id, commit=False)
            db.session.commit()

        except Exception:
            db.session.rollback()
            raise

        self.logger.info(f"✅ Subscription {subscription.id} created from payment {reference}")

        event = self.lifecycle.handle_subscription_created(user.id, subscription.id)
        if not event['success']:
            self.logger.warning(f"Subscription created event incomplete for {subscription.id}: {event.get('error')}")

        return {
            'payment': {
                'reference_id': payment_link.reference_id,
                'amount': float(payment_link.amount),
                'currency': payment_link.currency,
                'status': payment_link.status
            },
            'subscription': {
                'id': subscription.id,
                'plan': subscription.plan,
                'start_date': subscription.start_date.isoformat(),
                'end_date': subscription.end_date.isoformat(),
                'status': subscription.status
            },
            'phone_number': {
                'id': phone_number.id,
                'number': phone_number.number,
                'status': phone_number.status
            }
        }


def _optional_str(value):
    return str(value) if value is not None else None


def _parse_datetime(value):
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed
