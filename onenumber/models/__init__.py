from onenumber.models.user import User, Admin, ACCOUNT_STATUSES
from onenumber.models.phone_number import (
    PhoneNumber, PHONE_NUMBER_STATUSES, ASSIGNED_STATUSES, PHONE_NUMBER_CATEGORIES
)
from onenumber.models.subscription import (
    Subscription, SUBSCRIPTION_PLANS, SUBSCRIPTION_STATUSES, PAYMENT_METHODS,
    PLAN_DURATION_DAYS, PLAN_PRICES, plan_duration
)
from onenumber.models.payment import PaymentLink, PaymentTransaction
from onenumber.models.notification import Notification

__all__ = [
    'User',
    'Admin',
    'PhoneNumber',
    'Subscription',
    'PaymentLink',
    'PaymentTransaction',
    'Notification',
    'ACCOUNT_STATUSES',
    'PHONE_NUMBER_STATUSES',
    'ASSIGNED_STATUSES',
    'PHONE_NUMBER_CATEGORIES',
    'SUBSCRIPTION_PLANS',
    'SUBSCRIPTION_STATUSES',
    'PAYMENT_METHODS',
    'PLAN_DURATION_DAYS',
    'PLAN_PRICES',
    'plan_duration',
]
