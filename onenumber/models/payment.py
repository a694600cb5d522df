# onenumber/models/payment.py

import uuid
from datetime import datetime, timedelta
from sqlalchemy.orm import validates

from onenumber.extensions import db

PAYMENT_LINK_STATUSES = ('pending', 'completed', 'cancelled', 'expired', 'failed')
TRANSACTION_STATUSES = ('success', 'failed', 'pending', 'cancelled', 'refunded', 'no-show')

PAYMENT_LINK_TTL = timedelta(hours=24)


class PaymentLink(db.Model):
    """Hosted checkout link created with the gateway for one plan purchase"""
    __tablename__ = 'payment_links'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    reference_id = db.Column(db.String(100), unique=True, nullable=False, index=True)

    # Payment details
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default='NGN')
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    redirect_url = db.Column(db.String(500), nullable=False)
    authorization_url = db.Column(db.String(500))
    access_code = db.Column(db.String(100))
    status = db.Column(db.String(20), nullable=False, default='pending')

    # Timestamps
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)
    completed_at = db.Column(db.DateTime)
    cancelled_at = db.Column(db.DateTime)

    # plan_type, client_ip, user_agent
    link_metadata = db.Column(db.JSON, default=dict)

    user = db.relationship('User', backref=db.backref('payment_links', lazy='dynamic', cascade='all, delete'))

    def __init__(self, **kwargs):
        created_at = kwargs.pop('created_at', None) or datetime.utcnow()
        expires_at = kwargs.pop('expires_at', None) or created_at + PAYMENT_LINK_TTL
        kwargs.setdefault('status', 'pending')
        kwargs.setdefault('currency', 'NGN')
        super().__init__(created_at=created_at, **kwargs)
        self.expires_at = expires_at

    @validates('status')
    def validate_status(self, key, value):
        if value not in PAYMENT_LINK_STATUSES:
            raise ValueError(f"Invalid payment link status: {value}")
        return value

    @validates('expires_at')
    def validate_expires_at(self, key, value):
        if self.created_at and value <= self.created_at:
            raise ValueError('Expiration date must be after creation date')
        return value

    @property
    def plan_type(self):
        return (self.link_metadata or {}).get('plan_type') or 'standard'

    def is_expired(self, now=None) -> bool:
        return (now or datetime.utcnow()) > self.expires_at

    def mark_completed(self):
        self.status = 'completed'
        self.completed_at = datetime.utcnow()

    def mark_cancelled(self):
        self.status = 'cancelled'
        self.cancelled_at = datetime.utcnow()

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'reference_id': self.reference_id,
            'amount': float(self.amount) if self.amount is not None else None,
            'currency': self.currency,
            'name': self.name,
            'description': self.description,
            'redirect_url': self.redirect_url,
            'authorization_url': self.authorization_url,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'expires_at': self.expires_at.isoformat() if self.expires_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'cancelled_at': self.cancelled_at.isoformat() if self.cancelled_at else None,
            'metadata': self.link_metadata or {}
        }


class PaymentTransaction(db.Model):
    """Gateway-verified transaction snapshot, one row per gateway reference"""
    __tablename__ = 'payment_transactions'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    reference = db.Column(db.String(100), unique=True, nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False)

    # Amounts
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    requested_amount = db.Column(db.Numeric(12, 2))
    fees = db.Column(db.Numeric(12, 2))
    currency = db.Column(db.String(3), nullable=False, default='NGN')

    # Gateway details
    transaction_date = db.Column(db.DateTime, nullable=False)
    domain = db.Column(db.String(20))
    gateway_response = db.Column(db.String(255))
    channel = db.Column(db.String(50))
    ip_address = db.Column(db.String(64))
    plan = db.Column(db.String(50))

    # Customer snapshot at verification time
    customer_id = db.Column(db.String(64))
    customer_code = db.Column(db.String(64))
    customer_first_name = db.Column(db.String(100))
    customer_last_name = db.Column(db.String(100))
    customer_email = db.Column(db.String(255), index=True)

    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'), index=True)

    # Verification audit
    verified = db.Column(db.Boolean, nullable=False, default=False)
    verified_at = db.Column(db.DateTime)
    verified_by = db.Column(db.String(36))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @validates('status')
    def validate_status(self, key, value):
        if value not in TRANSACTION_STATUSES:
            raise ValueError(f"Invalid transaction status: {value}")
        return value

    def is_owned_by(self, principal) -> bool:
        """Match on customer email or customer id"""
        if principal is None:
            return False
        if self.customer_email and principal.email and self.customer_email.lower() == principal.email.lower():
            return True
        return self.customer_id is not None and self.customer_id == str(principal.id)

    def to_dict(self):
        return {
            'id': self.id,
            'reference': self.reference,
            'status': self.status,
            'amount': float(self.amount) if self.amount is not None else None,
            'requested_amount': float(self.requested_amount) if self.requested_amount is not None else None,
            'fees': float(self.fees) if self.fees is not None else None,
            'currency': self.currency,
            'transaction_date': self.transaction_date.isoformat() if self.transaction_date else None,
            'channel': self.channel,
            'gateway_response': self.gateway_response,
            'plan': self.plan,
            'customer': {
                'id': self.customer_id,
                'customer_code': self.customer_code,
                'first_name': self.customer_first_name,
                'last_name': self.customer_last_name,
                'email': self.customer_email
            },
            'verified': self.verified,
            'verified_at': self.verified_at.isoformat() if self.verified_at else None
        }
