from flask import Blueprint, request, jsonify
from marshmallow import Schema, fields, validate

from onenumber.models import PHONE_NUMBER_CATEGORIES
from onenumber.services import get_phone_number_service
from onenumber.utils.auth import login_required, authorize_roles, get_current_principal
from onenumber.utils.validators import validate_request_json

phone_number_bp = Blueprint('phone_number', __name__)


class AddPhoneNumberSchema(Schema):
    number = fields.Str(required=True)
    category = fields.Str(load_default='vanity', validate=validate.OneOf(PHONE_NUMBER_CATEGORIES))


class ImportPhoneNumbersSchema(Schema):
    phone_numbers = fields.List(fields.Dict(), required=True, validate=validate.Length(min=1))


class UpdateStatusSchema(Schema):
    status = fields.Str(required=True)
    user_id = fields.Str(load_default=None, allow_none=True)


@phone_number_bp.route('/available', methods=['GET'])
def get_available_phone_numbers():
    """Public listing of numbers that can be reserved"""
    numbers = get_phone_number_service().list_available()
    return jsonify({
        'success': True,
        'count': len(numbers),
        'data': [n.to_dict() for n in numbers]
    }), 200


@phone_number_bp.route('/<number_id>', methods=['GET'])
@login_required
def get_phone_number(number_id):
    phone_number = get_phone_number_service().get_phone_number(number_id)
    return jsonify({'success': True, 'data': phone_number.to_dict()}), 200


@phone_number_bp.route('/<number_id>/reserve', methods=['PUT'])
@login_required
@authorize_roles('user')
def reserve_phone_number(number_id):
    """Reserve an available number for the current user"""
    user = get_current_principal()
    phone_number = get_phone_number_service().reserve(number_id, user.id)

    return jsonify({
        'success': True,
        'message': 'Phone number reserved successfully',
        'data': phone_number.to_dict()
    }), 200


# =============================================================================
# ADMIN ROUTES
# =============================================================================

@phone_number_bp.route('/add', methods=['POST'])
@login_required
@authorize_roles('admin')
@validate_request_json(AddPhoneNumberSchema())
def add_phone_number():
    data = request.validated_data
    phone_number = get_phone_number_service().add_phone_number(data['number'], data['category'])

    return jsonify({
        'success': True,
        'message': 'Phone number added successfully',
        'data': phone_number.to_dict()
    }), 201


@phone_number_bp.route('/import', methods=['POST'])
@login_required
@authorize_roles('admin')
@validate_request_json(ImportPhoneNumbersSchema())
def import_phone_numbers():
    """Bulk add numbers from a JSON list of {number, category}"""
    results = get_phone_number_service().import_phone_numbers(request.validated_data['phone_numbers'])

    inserted = len(results['inserted'])
    status_code = 201 if inserted else 400
    return jsonify({
        'success': inserted > 0,
        'message': f"Processed {inserted} phone numbers",
        'data': results
    }), status_code


@phone_number_bp.route('', methods=['GET'])
@login_required
@authorize_roles('admin')
def get_all_phone_numbers():
    status = request.args.get('status')
    category = request.args.get('category') or request.args.get('type')
    search = request.args.get('search')

    numbers = get_phone_number_service().list_phone_numbers(status, category, search)
    return jsonify({
        'success': True,
        'count': len(numbers),
        'data': [n.to_dict(include_user=True) for n in numbers]
    }), 200


@phone_number_bp.route('/taken', methods=['GET'])
@login_required
@authorize_roles('admin')
def get_taken_phone_numbers():
    page = max(request.args.get('page', 1, type=int), 1)
    limit = min(max(request.args.get('limit', 20, type=int), 1), 100)

    result = get_phone_number_service().list_taken(page, limit)
    return jsonify({
        'success': True,
        'data': result['phone_numbers'],
        'pagination': result['pagination']
    }), 200


@phone_number_bp.route('/stats', methods=['GET'])
@login_required
@authorize_roles('admin')
def get_phone_number_stats():
    return jsonify({'success': True, 'data': get_phone_number_service().get_stats()}), 200


@phone_number_bp.route('/<number_id>/status', methods=['PUT'])
@login_required
@authorize_roles('admin')
@validate_request_json(UpdateStatusSchema())
def update_phone_number_status(number_id):
    data = request.validated_data
    phone_number = get_phone_number_service().update_status(number_id, data['status'], data['user_id'])

    return jsonify({
        'success': True,
        'message': 'Phone number status updated successfully',
        'data': phone_number.to_dict()
    }), 200


@phone_number_bp.route('/<number_id>', methods=['DELETE'])
@login_required
@authorize_roles('admin')
def delete_phone_number(number_id):
    get_phone_number_service().delete_phone_number(number_id)
    return jsonify({'success': True, 'message': 'Phone number deleted successfully'}), 200
