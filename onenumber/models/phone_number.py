import uuid
from datetime import datetime, timedelta

from onenumber.extensions import db
from onenumber.exceptions import ConflictError, AuthorizationError

PHONE_NUMBER_STATUSES = ('available', 'reserved', 'active', 'suspended')
ASSIGNED_STATUSES = ('reserved', 'active', 'suspended')
PHONE_NUMBER_CATEGORIES = ('toll-free', 'vanity')

DEFAULT_RESERVATION_MINUTES = 30


class PhoneNumber(db.Model):
    """
    One allocatable number.

    `user_id` is set only while the number is reserved, active or suspended,
    and `reserved_until` only while it is reserved. Writes are guarded by the
    `version` column so two concurrent claims cannot both commit.
    """
    __tablename__ = 'phone_numbers'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    number = db.Column(db.String(32), unique=True, nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default='available', index=True)
    category = db.Column(db.String(20), nullable=False, default='vanity')

    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), index=True)
    reserved_until = db.Column(db.DateTime)

    version = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', foreign_keys=[user_id])

    __mapper_args__ = {'version_id_col': version}

    def __init__(self, **kwargs):
        kwargs.setdefault('status', 'available')
        kwargs.setdefault('category', 'vanity')
        super().__init__(**kwargs)

    def is_available(self) -> bool:
        return self.status == 'available'

    def is_reservation_expired(self, now=None) -> bool:
        now = now or datetime.utcnow()
        return self.status == 'reserved' and self.reserved_until is not None and self.reserved_until < now

    def reserve(self, user_id, duration_minutes=DEFAULT_RESERVATION_MINUTES):
        """Claim an available number for `user_id`; caller commits"""
        if not self.is_available():
            raise ConflictError('Phone number is not available for reservation')

        self.user_id = user_id
        self.status = 'reserved'
        self.reserved_until = datetime.utcnow() + timedelta(minutes=duration_minutes)
        return self

    def activate(self, user_id):
        """Turn the caller's reservation into an active assignment; caller commits"""
        if self.status != 'reserved':
            raise ConflictError('Phone number is not reserved')
        if self.user_id != user_id:
            raise AuthorizationError('Phone number is reserved by another user')

        self.status = 'active'
        self.reserved_until = None
        return self

    def release(self):
        self.user_id = None
        self.status = 'available'
        self.reserved_until = None
        return self

    def to_dict(self, include_user=False):
        data = {
            'id': self.id,
            'number': self.number,
            'status': self.status,
            'category': self.category,
            'user_id': self.user_id,
            'reserved_until': self.reserved_until.isoformat() if self.reserved_until else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

        if include_user and self.user:
            data['user'] = {
                'id': self.user.id,
                'email': self.user.email,
                'first_name': self.user.first_name,
                'last_name': self.user.last_name
            }

        return data

    def __repr__(self):
        return f'<PhoneNumber {self.number} {self.status}>'
