from flask import Blueprint, request, jsonify
from flask_jwt_extended import set_access_cookies
from marshmallow import Schema, fields, validate, pre_load

from onenumber.models import ACCOUNT_STATUSES
from onenumber.services import get_user_service
from onenumber.utils.auth import login_required, authorize_roles, get_current_principal
from onenumber.utils.validators import validate_request_json

user_bp = Blueprint('user', __name__)

CAMEL_CASE_FIELDS = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'currentPassword': 'current_password',
    'newPassword': 'new_password',
    'confirmPassword': 'confirm_password',
    'accountStatus': 'account_status',
    'isEmailVerified': 'is_email_verified',
}


class CamelCaseSchema(Schema):
    @pre_load
    def accept_camel_case(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for camel, snake in CAMEL_CASE_FIELDS.items():
            if camel in data and snake not in data:
                data[snake] = data.pop(camel)
        return data


# Request Schemas
class UpdateProfileSchema(CamelCaseSchema):
    first_name = fields.Str(load_default=None, validate=validate.Length(min=1, max=50))
    last_name = fields.Str(load_default=None, validate=validate.Length(min=1, max=50))
    email = fields.Email(load_default=None)


class UpdatePasswordSchema(CamelCaseSchema):
    current_password = fields.Str(required=True)
    new_password = fields.Str(required=True, validate=validate.Length(min=8))
    confirm_password = fields.Str(required=True)


class AdminUpdateUserSchema(CamelCaseSchema):
    first_name = fields.Str(load_default=None, validate=validate.Length(min=1, max=50))
    last_name = fields.Str(load_default=None, validate=validate.Length(min=1, max=50))
    email = fields.Email(load_default=None)
    account_status = fields.Str(load_default=None, validate=validate.OneOf(ACCOUNT_STATUSES))
    is_email_verified = fields.Bool(load_default=None)


# =============================================================================
# PROFILE ROUTES
# =============================================================================

@user_bp.route('/profile', methods=['GET'])
@login_required
@authorize_roles('user')
def get_profile():
    return jsonify({
        'success': True,
        'data': get_user_service().get_profile(get_current_principal())
    }), 200


@user_bp.route('/profile', methods=['PUT'])
@login_required
@authorize_roles('user')
@validate_request_json(UpdateProfileSchema())
def update_profile():
    result = get_user_service().update_profile(get_current_principal(), request.validated_data)

    return jsonify({
        'success': True,
        'message': result['message'],
        'data': result['user']
    }), 200


@user_bp.route('/update-password', methods=['PUT'])
@login_required
@authorize_roles('user')
@validate_request_json(UpdatePasswordSchema())
def update_password():
    """Change password and reissue the access token"""
    data = request.validated_data
    access_token = get_user_service().update_password(
        get_current_principal(),
        data['current_password'],
        data['new_password'],
        data['confirm_password']
    )

    response = jsonify({
        'success': True,
        'message': 'Password updated successfully',
        'data': {'access_token': access_token}
    })
    set_access_cookies(response, access_token)
    return response, 200


# =============================================================================
# ADMIN ROUTES
# =============================================================================

@user_bp.route('', methods=['GET'])
@login_required
@authorize_roles('admin')
def get_all_users():
    users = get_user_service().list_users(
        account_status=request.args.get('account_status'),
        search=request.args.get('search')
    )

    return jsonify({
        'success': True,
        'count': len(users),
        'data': [u.to_dict() for u in users]
    }), 200


@user_bp.route('/<user_id>', methods=['GET'])
@login_required
@authorize_roles('admin')
def get_user(user_id):
    service = get_user_service()
    return jsonify({'success': True, 'data': service.get_profile(service.get_user(user_id))}), 200


@user_bp.route('/<user_id>', methods=['PUT'])
@login_required
@authorize_roles('admin')
@validate_request_json(AdminUpdateUserSchema())
def update_user(user_id):
    user = get_user_service().update_user(user_id, request.validated_data)

    return jsonify({
        'success': True,
        'message': 'User updated successfully',
        'data': user.to_dict()
    }), 200


@user_bp.route('/<user_id>', methods=['DELETE'])
@login_required
@authorize_roles('admin')
def delete_user(user_id):
    get_user_service().delete_user(user_id)
    return jsonify({'success': True, 'message': 'User deleted successfully'}), 200


@user_bp.route('/<user_id>/unassign-number', methods=['PUT'])
@login_required
@authorize_roles('admin')
def unassign_phone_number(user_id):
    result = get_user_service().unassign_phone_number(user_id)

    return jsonify({
        'success': True,
        'message': 'Phone number unassigned successfully',
        'data': result
    }), 200


@user_bp.route('/<user_id>/activate', methods=['PUT'])
@login_required
@authorize_roles('admin')
def activate_user_account(user_id):
    result = get_user_service().activate_account(user_id)

    return jsonify({
        'success': True,
        'message': 'User account activated successfully',
        'data': result
    }), 200
