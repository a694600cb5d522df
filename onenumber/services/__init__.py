# Service Factory Pattern
def get_user_service():
    from .user_service import UserService
    return UserService()

def get_phone_number_service():
    from .phone_number_service import PhoneNumberService
    return PhoneNumberService()

def get_notification_service():
    from .notification_service import NotificationService
    return NotificationService()

def get_email_service():
    from .email_service import EmailService
    return EmailService()

def get_subscription_lifecycle_service():
    from .subscription_lifecycle_service import SubscriptionLifecycleService
    return SubscriptionLifecycleService()

def get_subscription_service():
    from .subscription_service import SubscriptionService
    return SubscriptionService()

def get_payment_service():
    from .payment_service import PaymentService
    return PaymentService()


__all__ = [
    "get_user_service",
    "get_phone_number_service",
    "get_notification_service",
    "get_email_service",
    "get_subscription_lifecycle_service",
    "get_subscription_service",
    "get_payment_service",
]
