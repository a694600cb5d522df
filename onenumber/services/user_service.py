import logging
from datetime import datetime, timedelta
from typing import Dict, Any, List

from sqlalchemy.exc import IntegrityError

from onenumber.extensions import db
from onenumber.exceptions import ValidationError, NotFoundError, ConflictError, AuthenticationError
from onenumber.models import (
    User, Admin, PhoneNumber, Subscription, PaymentTransaction, Notification, ACCOUNT_STATUSES
)
from onenumber.utils.auth import issue_access_token
from onenumber.utils.validators import validate_email, is_valid_id, sanitize_string

# Service on a newly activated account starts this many working days out
ACTIVATION_LEAD_WORKING_DAYS = 5


def add_working_days(start: datetime, days: int) -> datetime:
    """Step forward `days` weekdays from `start`, skipping Saturdays and Sundays"""
    result = start
    added = 0
    while added < days:
        result += timedelta(days=1)
        if result.weekday() < 5:
            added += 1
    return result


class UserService:
    """Registration, credentials, profiles and admin management of user accounts"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def register_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            email = user_data['email'].strip().lower()
            if not validate_email(email):
                return {'success': False, 'error': 'Invalid email format'}

            if User.query.filter_by(email=email).first():
                return {'success': False, 'error': 'User with this email already exists'}

            user = User(
                email=email,
                password=user_data['password'],
                first_name=user_data['first_name'],
                last_name=user_data['last_name']
            )
            db.session.add(user)
            db.session.commit()

            from onenumber.services import get_notification_service
            welcome = get_notification_service().notify_user_registered(user)
            if not welcome['success']:
                self.logger.warning(f"Welcome notifications failed for {user.id}: {welcome['error']}")

            return {
                'success': True,
                'user': user.to_dict(),
                'access_token': issue_access_token(user),
                'message': 'User registered successfully'
            }

        except IntegrityError as e:
            db.session.rollback()
            self.logger.error(f"Database integrity error during registration: {str(e)}")
            return {'success': False, 'error': 'Registration failed due to duplicate data'}

    def authenticate_user(self, email: str, password: str) -> Dict[str, Any]:
        user = User.query.filter_by(email=email.strip().lower()).first()

        if not user or not user.check_password(password):
            return {'success': False, 'error': 'Invalid credentials'}

        if user.account_status == 'suspended':
            return {'success': False, 'error': 'Account is suspended'}

        return {
            'success': True,
            'user': user.to_dict(),
            'access_token': issue_access_token(user)
        }

    def authenticate_admin(self, email: str, password: str) -> Dict[str, Any]:
        admin = Admin.query.filter_by(email=email.strip().lower()).first()

        if not admin or not admin.check_password(password):
            return {'success': False, 'error': 'Invalid credentials'}

        if not admin.is_active:
            return {'success': False, 'error': 'Account is deactivated'}

        return {
            'success': True,
            'admin': admin.to_dict(),
            'access_token': issue_access_token(admin)
        }

    def create_admin(self, email, password, first_name, last_name) -> Admin:
        admin = Admin(
            email=email.strip().lower(),
            password=password,
            first_name=first_name,
            last_name=last_name
        )
        db.session.add(admin)
        db.session.commit()
        self.logger.info(f"Admin {admin.email} created")
        return admin

    # =========================================================================
    # PROFILE
    # =========================================================================

    def _change_email(self, user, email):
        email = (email or '').strip().lower()
        if not validate_email(email):
            raise ValidationError('Invalid email format')
        if email == user.email:
            return False

        if User.query.filter(User.email == email, User.id != user.id).first():
            raise ConflictError('User with this email already exists')

        user.email = email
        user.is_email_verified = False
        return True

    def get_profile(self, user) -> Dict[str, Any]:
        data = user.to_dict()
        phone_number = db.session.get(PhoneNumber, user.phone_number_id) if user.phone_number_id else None
        data['phone_number'] = phone_number.to_dict() if phone_number else None
        return data

    def update_profile(self, user, data: Dict[str, Any]) -> Dict[str, Any]:
        """Users may change their name and email; a new email needs verifying again"""
        for field in ('first_name', 'last_name'):
            value = sanitize_string(data.get(field), max_length=50)
            if value:
                setattr(user, field, value)

        email_changed = False
        if data.get('email'):
            email_changed = self._change_email(user, data['email'])

        db.session.commit()
        self.logger.info(f"User {user.id} updated their profile")

        return {
            'user': self.get_profile(user),
            'message': 'Profile updated. Please verify your new email address.'
            if email_changed else 'Profile updated successfully'
        }

    def update_password(self, user, current_password, new_password, confirm_password) -> str:
        if not user.check_password(current_password or ''):
            raise AuthenticationError('Your current password is incorrect')
        if new_password != confirm_password:
            raise ValidationError('Passwords do not match')

        user.set_password(new_password)
        db.session.commit()

        self.logger.info(f"User {user.id} changed their password")
        return issue_access_token(user)

    # =========================================================================
    # ADMIN USER MANAGEMENT
    # =========================================================================

    def get_user(self, user_id) -> User:
        if not is_valid_id(user_id):
            raise ValidationError('Invalid user ID')

        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError('User not found')
        return user

    def list_users(self, account_status=None, search=None) -> List[User]:
        query = User.query

        if account_status:
            query = query.filter(User.account_status == account_status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(db.or_(
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern)
            ))

        return query.order_by(User.created_at.desc()).all()

    def update_user(self, user_id, data: Dict[str, Any]) -> User:
        user = self.get_user(user_id)

        for field in ('first_name', 'last_name'):
            if data.get(field) is not None:
                value = sanitize_string(data[field], max_length=50)
                if not value:
                    raise ValidationError(f"{field} cannot be empty")
                setattr(user, field, value)

        if data.get('email') is not None:
            self._change_email(user, data['email'])

        if data.get('account_status') is not None:
            if data['account_status'] not in ACCOUNT_STATUSES:
                raise ValidationError('Invalid account status')
            user.account_status = data['account_status']

        if data.get('is_email_verified') is not None:
            user.is_email_verified = bool(data['is_email_verified'])

        db.session.commit()
        self.logger.info(f"User {user.id} updated by admin")
        return user

    def delete_user(self, user_id) -> None:
        """Remove an account that holds no number, along with its subscriptions, links and notifications"""
        user = self.get_user(user_id)

        if user.phone_number_id or PhoneNumber.query.filter_by(user_id=user.id).first():
            raise ConflictError("Unassign the user's phone number before deleting the account", status_code=400)

        PaymentTransaction.query.filter_by(user_id=user.id).update({'user_id': None})
        Notification.query.filter_by(recipient_id=user.id, recipient_type='user').delete()
        db.session.delete(user)
        db.session.commit()

        self.logger.info(f"User {user_id} deleted")

    def unassign_phone_number(self, user_id) -> Dict[str, Any]:
        """Return the user's number to the pool and clear their profile reference"""
        from onenumber.services import get_phone_number_service

        user = self.get_user(user_id)
        if not user.phone_number_id:
            raise ValidationError('User does not have a phone number assigned')

        phone_number = get_phone_number_service().update_status(user.phone_number_id, 'available', commit=False)
        user.phone_number_id = None
        db.session.commit()

        self.logger.info(f"Phone number {phone_number.number} unassigned from user {user.id}")
        return {'user': user.to_dict(), 'phone_number': phone_number.to_dict()}

    def activate_account(self, user_id, now=None) -> Dict[str, Any]:
        """
        Activate a user account and move the start of their active
        subscriptions to a few working days out, keeping each duration.
        """
        from onenumber.services import get_notification_service, get_email_service

        user = self.get_user(user_id)
        if user.account_status == 'active':
            raise ValidationError('User account is already active')

        start_date = add_working_days(now or datetime.utcnow(), ACTIVATION_LEAD_WORKING_DAYS)
        user.activate_account()

        subscriptions = Subscription.query.filter_by(user_id=user.id, status='active').all()
        for subscription in subscriptions:
            duration = subscription.end_date - subscription.start_date
            subscription.start_date = start_date
            subscription.end_date = start_date + duration

        db.session.commit()
        self.logger.info(f"User {user.id} activated, {len(subscriptions)} subscription(s) start {start_date.isoformat()}")

        notified = get_notification_service().notify_user_activated(user)
        if not notified['success']:
            self.logger.warning(f"Activation notifications failed for {user.id}: {notified['error']}")
        if not get_email_service().send_account_activation_email(user, start_date):
            self.logger.warning(f"Activation email was not sent to {user.email}")

        return {
            'user': user.to_dict(),
            'subscriptions': [
                {
                    'id': s.id,
                    'plan': s.plan,
                    'start_date': s.start_date.isoformat(),
                    'end_date': s.end_date.isoformat()
                }
                for s in subscriptions
            ],
            'subscription_start_date': start_date.isoformat()
        }
