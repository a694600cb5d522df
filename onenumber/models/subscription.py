import math
import uuid
from datetime import datetime, timedelta
from sqlalchemy.orm import validates

from onenumber.extensions import db

SUBSCRIPTION_PLANS = ('monthly', 'yearly', 'standard', 'lite', 'premium')
SUBSCRIPTION_STATUSES = ('active', 'expired', 'cancelled', 'suspended')
PAYMENT_METHODS = ('card', 'bank_transfer', 'ussd', 'wallet', 'online')

# Days of entitlement bought by one payment on each plan
PLAN_DURATION_DAYS = {
    'monthly': 30,
    'yearly': 365,
    'lite': 45,
    'standard': 45,
    'premium': 60,
}

PLAN_PRICES = {
    'monthly': 9.99,
    'yearly': 99.99,
    'lite': 16500,
    'standard': 33000,
    'premium': 82500,
}


def plan_duration(plan) -> timedelta:
    return timedelta(days=PLAN_DURATION_DAYS.get(plan, PLAN_DURATION_DAYS['yearly']))


class Subscription(db.Model):
    """A user's paid entitlement to a phone number for a time window"""
    __tablename__ = 'subscriptions'
    __table_args__ = (
        db.CheckConstraint('price >= 0', name='ck_subscription_price_positive'),
        db.CheckConstraint('end_date > start_date', name='ck_subscription_dates'),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    number_id = db.Column(db.String(36), db.ForeignKey('phone_numbers.id', ondelete='CASCADE'), nullable=False, index=True)

    plan = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='active', index=True)
    start_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    end_date = db.Column(db.DateTime, nullable=False, index=True)
    auto_renew = db.Column(db.Boolean, nullable=False, default=True)

    # Billing
    price = db.Column(db.Numeric(12, 2), nullable=False)
    payment_method = db.Column(db.String(20), nullable=False)
    payment_reference = db.Column(db.String(100), nullable=False, index=True)

    # Usage
    minutes_used = db.Column(db.Integer, nullable=False, default=0)
    renewal_reminder_sent = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('User', backref=db.backref(
        'subscriptions', lazy='dynamic', cascade='all, delete'
    ))
    # Subscription history goes with the number when an admin deletes it
    phone_number = db.relationship('PhoneNumber', backref=db.backref(
        'subscriptions', lazy='dynamic', cascade='all, delete'
    ))

    def __init__(self, **kwargs):
        kwargs.setdefault('status', 'active')
        kwargs.setdefault('auto_renew', True)
        kwargs.setdefault('minutes_used', 0)
        kwargs.setdefault('renewal_reminder_sent', False)
        kwargs.setdefault('start_date', datetime.utcnow())
        super().__init__(**kwargs)

    @validates('plan')
    def validate_plan(self, key, value):
        if value not in SUBSCRIPTION_PLANS:
            raise ValueError(f"Invalid plan: {value}")
        return value

    @validates('status')
    def validate_status(self, key, value):
        if value not in SUBSCRIPTION_STATUSES:
            raise ValueError(f"Invalid status: {value}")
        return value

    @validates('payment_method')
    def validate_payment_method(self, key, value):
        if value not in PAYMENT_METHODS:
            raise ValueError(f"Invalid payment method: {value}")
        return value

    @validates('price')
    def validate_price(self, key, value):
        if value is None or float(value) < 0:
            raise ValueError('Price must be a non-negative number')
        return value

    @property
    def remaining_days(self) -> int:
        seconds = (self.end_date - datetime.utcnow()).total_seconds()
        return max(0, math.ceil(seconds / 86400))

    def is_active(self) -> bool:
        return self.status == 'active' and self.end_date > datetime.utcnow()

    def renew(self, payment_reference):
        """Extend the window by one plan period; caller commits"""
        now = datetime.utcnow()
        duration = plan_duration(self.plan)

        if self.end_date < now:
            self.start_date = now
            self.end_date = now + duration
        else:
            self.end_date = self.end_date + duration

        self.status = 'active'
        self.payment_reference = payment_reference
        self.renewal_reminder_sent = False
        return self

    def cancel(self):
        self.status = 'cancelled'
        self.auto_renew = False
        return self

    def to_dict(self, include_relationships=False):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'number_id': self.number_id,
            'plan': self.plan,
            'status': self.status,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'auto_renew': self.auto_renew,
            'price': float(self.price) if self.price is not None else None,
            'payment_method': self.payment_method,
            'payment_reference': self.payment_reference,
            'minutes_used': self.minutes_used,
            'renewal_reminder_sent': self.renewal_reminder_sent,
            'remaining_days': self.remaining_days if self.end_date else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

        if include_relationships:
            data['phone_number'] = self.phone_number.to_dict() if self.phone_number else None
            data['user'] = {
                'id': self.user.id,
                'email': self.user.email,
                'first_name': self.user.first_name,
                'last_name': self.user.last_name
            } if self.user else None

        return data

    def __repr__(self):
        return f'<Subscription {self.id} {self.plan} {self.status}>'
