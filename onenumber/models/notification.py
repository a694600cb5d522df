import uuid
from datetime import datetime

from onenumber.extensions import db

NOTIFICATION_TYPES = ('info', 'success', 'warning', 'error')
NOTIFICATION_CATEGORIES = ('subscription', 'user', 'payment', 'account', 'system')
RECIPIENT_TYPES = ('user', 'admin')
DEFAULT_CHANNELS = ['in-app', 'email', 'push']


class Notification(db.Model):
    """In-app notification addressed to one user or admin"""
    __tablename__ = 'notifications'
    __table_args__ = (
        db.Index('ix_notifications_recipient', 'recipient_id', 'recipient_type', 'is_read'),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_id = db.Column(db.String(36), nullable=False)
    recipient_type = db.Column(db.String(10), nullable=False)

    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    type = db.Column(db.String(20), nullable=False, default='info')
    category = db.Column(db.String(20), nullable=False, default='system')
    related_id = db.Column(db.String(36))

    is_read = db.Column(db.Boolean, nullable=False, default=False)
    channels = db.Column(db.JSON, default=lambda: list(DEFAULT_CHANNELS))

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def mark_read(self):
        self.is_read = True

    def to_dict(self):
        return {
            'id': self.id,
            'recipient_id': self.recipient_id,
            'recipient_type': self.recipient_type,
            'title': self.title,
            'message': self.message,
            'type': self.type,
            'category': self.category,
            'related_id': self.related_id,
            'is_read': self.is_read,
            'channels': self.channels or [],
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
