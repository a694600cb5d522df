import logging
from datetime import datetime, timedelta
from typing import Dict, Any, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from onenumber.extensions import db
from onenumber.exceptions import ValidationError, NotFoundError, ConflictError
from onenumber.models import User, PhoneNumber, PHONE_NUMBER_STATUSES, PHONE_NUMBER_CATEGORIES
from onenumber.utils.validators import validate_phone_number, sanitize_string


class PhoneNumberService:
    """Inventory management and status transitions for phone numbers"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def _reservation_minutes(self) -> int:
        return current_app.config.get('RESERVATION_MINUTES', 30)

    def get_phone_number(self, number_id) -> PhoneNumber:
        phone_number = db.session.get(PhoneNumber, number_id)
        if not phone_number:
            raise NotFoundError('Phone number not found')
        return phone_number

    # =========================================================================
    # STATUS TRANSITIONS
    # =========================================================================

    def reserve(self, number_id, user_id) -> PhoneNumber:
        """User-facing reservation; only available numbers can be claimed"""
        phone_number = self.get_phone_number(number_id)
        phone_number.reserve(user_id, self._reservation_minutes())
        db.session.commit()

        self.logger.info(f"Phone number {phone_number.number} reserved by user {user_id}")
        return phone_number

    def update_status(self, number_id, status, user_id=None, commit=True) -> PhoneNumber:
        """
        Admin status change, also used internally after payment.

        Moving to `available` unassigns the number and removes it from the
        previous holder's profile. Any other status assigns the number to
        `user_id` (defaulting to the current holder) and refuses to move a
        number held by someone else.
        """
        if status not in PHONE_NUMBER_STATUSES:
            raise ValidationError('Invalid status')

        phone_number = self.get_phone_number(number_id)

        if status == 'available':
            if phone_number.user_id:
                previous = db.session.get(User, phone_number.user_id)
                if previous and previous.phone_number_id == phone_number.id:
                    previous.phone_number_id = None
            phone_number.release()

        else:
            user_id = user_id or phone_number.user_id
            if not user_id:
                raise ValidationError('User ID is required for this status')

            if phone_number.user_id and phone_number.user_id != user_id:
                raise ConflictError('Phone number is already assigned to another user', status_code=400)

            user = db.session.get(User, user_id)
            if not user:
                raise NotFoundError('User not found')

            user.phone_number_id = phone_number.id
            phone_number.user_id = user.id
            phone_number.status = status
            phone_number.reserved_until = (
                datetime.utcnow() + timedelta(minutes=self._reservation_minutes())
                if status == 'reserved' else None
            )

        if commit:
            db.session.commit()
            self.logger.info(f"Phone number {phone_number.number} status updated to {status}")
        else:
            db.session.flush()

        return phone_number

    def release_expired_reservations(self, now=None) -> Dict[str, Any]:
        """Return reservations past reserved_until to the pool"""
        now = now or datetime.utcnow()
        expired = PhoneNumber.query.filter(
            PhoneNumber.status == 'reserved',
            PhoneNumber.reserved_until < now
        ).all()

        released = []
        for phone_number in expired:
            self.update_status(phone_number.id, 'available', commit=False)
            released.append(phone_number.number)

        db.session.commit()

        if released:
            self.logger.info(f"Released {len(released)} expired reservations")
        return {'success': True, 'released': released}

    # =========================================================================
    # INVENTORY
    # =========================================================================

    def add_phone_number(self, number, category='vanity') -> PhoneNumber:
        number = sanitize_string(number)
        if not number:
            raise ValidationError('Phone number is required')
        if not validate_phone_number(number):
            raise ValidationError('Invalid phone number format')
        if category not in PHONE_NUMBER_CATEGORIES:
            raise ValidationError('Invalid phone number type')

        if PhoneNumber.query.filter_by(number=number).first():
            raise ConflictError('Phone number already exists')

        phone_number = PhoneNumber(number=number, category=category)
        db.session.add(phone_number)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError('Phone number already exists')

        self.logger.info(f"Phone number {number} added")
        return phone_number

    def import_phone_numbers(self, records: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Bulk add; per-record failures are collected, not raised"""
        results = {'inserted': [], 'duplicates': [], 'errors': []}
        seen = set()

        for index, record in enumerate(records):
            number = sanitize_string((record or {}).get('number'))
            category = (record or {}).get('category') or 'vanity'

            if not number or not validate_phone_number(number):
                results['errors'].append({'row': index, 'number': number, 'error': 'Invalid phone number'})
                continue
            if category not in PHONE_NUMBER_CATEGORIES:
                results['errors'].append({'row': index, 'number': number, 'error': 'Invalid phone number type'})
                continue
            if number in seen or PhoneNumber.query.filter_by(number=number).first():
                results['duplicates'].append(number)
                continue

            seen.add(number)
            db.session.add(PhoneNumber(number=number, category=category))
            results['inserted'].append(number)

        db.session.commit()

        self.logger.info(
            f"Imported {len(results['inserted'])} phone numbers "
            f"({len(results['duplicates'])} duplicates, {len(results['errors'])} errors)"
        )
        return results

    def list_phone_numbers(self, status=None, category=None, search=None) -> List[PhoneNumber]:
        query = PhoneNumber.query

        if status:
            query = query.filter(PhoneNumber.status == status)
        if category:
            query = query.filter(PhoneNumber.category == category)
        if search:
            query = query.filter(PhoneNumber.number.ilike(f"%{search}%"))

        return query.order_by(PhoneNumber.created_at.desc()).all()

    def list_available(self) -> List[PhoneNumber]:
        return PhoneNumber.query.filter_by(status='available') \
            .order_by(PhoneNumber.created_at.desc()).all()

    def list_taken(self, page=1, limit=20) -> Dict[str, Any]:
        pagination = PhoneNumber.query.filter(PhoneNumber.status != 'available') \
            .order_by(PhoneNumber.updated_at.desc()) \
            .paginate(page=page, per_page=limit, error_out=False)

        return {
            'phone_numbers': [n.to_dict(include_user=True) for n in pagination.items],
            'pagination': {
                'total': pagination.total,
                'page': page,
                'limit': limit,
                'pages': pagination.pages
            }
        }

    def delete_phone_number(self, number_id) -> None:
        phone_number = self.get_phone_number(number_id)
        if phone_number.status != 'available':
            raise ValidationError('Cannot delete a phone number that is currently in use')

        if phone_number.subscriptions.filter_by(status='active').count():
            raise ValidationError('Cannot delete a phone number with an active subscription')

        history = phone_number.subscriptions.count()
        db.session.delete(phone_number)
        db.session.commit()
        self.logger.info(f"Phone number {phone_number.number} deleted with {history} past subscription(s)")

    def get_stats(self) -> Dict[str, Any]:
        status_counts = dict(
            db.session.query(PhoneNumber.status, db.func.count(PhoneNumber.id))
            .group_by(PhoneNumber.status).all()
        )
        category_counts = dict(
            db.session.query(PhoneNumber.category, db.func.count(PhoneNumber.id))
            .group_by(PhoneNumber.category).all()
        )

        return {
            'total': sum(status_counts.values()),
            'by_status': {status: status_counts.get(status, 0) for status in PHONE_NUMBER_STATUSES},
            'by_category': {category: category_counts.get(category, 0) for category in PHONE_NUMBER_CATEGORIES}
        }

    def find_by_number(self, number) -> Optional[PhoneNumber]:
        return PhoneNumber.query.filter_by(number=number).first()
