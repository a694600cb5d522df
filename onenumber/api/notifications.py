from flask import Blueprint, request, jsonify

from onenumber.exceptions import NotFoundError
from onenumber.services import get_notification_service
from onenumber.utils.auth import login_required, get_current_principal

notification_bp = Blueprint('notification', __name__)


def _recipient():
    principal = get_current_principal()
    recipient_type = 'admin' if principal.role == 'admin' else 'user'
    return principal.id, recipient_type


@notification_bp.route('', methods=['GET'])
@login_required
def get_notifications():
    """List notifications for the current user or admin"""
    recipient_id, recipient_type = _recipient()

    limit = min(max(request.args.get('limit', 10, type=int), 1), 100)
    offset = max(request.args.get('offset', 0, type=int), 0)
    include_read = request.args.get('include_read', 'false').lower() == 'true'

    result = get_notification_service().get_notifications(
        recipient_id, recipient_type, limit, offset, include_read
    )
    return jsonify({'success': True, 'data': result}), 200


@notification_bp.route('/<notification_id>/read', methods=['PUT'])
@login_required
def mark_notification_read(notification_id):
    recipient_id, recipient_type = _recipient()

    if not get_notification_service().mark_notification_as_read(notification_id, recipient_id, recipient_type):
        raise NotFoundError('Notification not found')

    return jsonify({'success': True, 'message': 'Notification marked as read'}), 200


@notification_bp.route('/read', methods=['PUT'])
@login_required
def mark_all_notifications_read():
    recipient_id, recipient_type = _recipient()
    updated = get_notification_service().mark_all_notifications_as_read(recipient_id, recipient_type)

    return jsonify({
        'success': True,
        'message': f"{updated} notifications marked as read",
        'data': {'updated': updated}
    }), 200


@notification_bp.route('/<notification_id>', methods=['DELETE'])
@login_required
def delete_notification(notification_id):
    recipient_id, recipient_type = _recipient()

    if not get_notification_service().delete_notification(notification_id, recipient_id, recipient_type):
        raise NotFoundError('Notification not found')

    return jsonify({'success': True, 'message': 'Notification deleted successfully'}), 200
