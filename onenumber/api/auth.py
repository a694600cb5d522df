from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import set_access_cookies, unset_jwt_cookies
from marshmallow import Schema, fields, validate

from onenumber.services import get_user_service
from onenumber.utils.auth import login_required, get_current_principal
from onenumber.utils.validators import validate_request_json

auth_bp = Blueprint('auth', __name__)


# Request Schemas
class RegisterSchema(Schema):
    email = fields.Email(required=True)
    password = fields.Str(required=True, validate=validate.Length(min=8))
    first_name = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    last_name = fields.Str(required=True, validate=validate.Length(min=1, max=50))


class LoginSchema(Schema):
    email = fields.Email(required=True)
    password = fields.Str(required=True)


@auth_bp.route('/user/register', methods=['POST'])
@validate_request_json(RegisterSchema())
def register():
    """Register new user"""
    result = get_user_service().register_user(request.validated_data)

    if not result['success']:
        return jsonify({'success': False, 'message': result['error']}), 400

    response = jsonify({
        'success': True,
        'message': result['message'],
        'data': {'user': result['user'], 'access_token': result['access_token']}
    })
    set_access_cookies(response, result['access_token'])
    return response, 201


@auth_bp.route('/user/login', methods=['POST'])
@validate_request_json(LoginSchema())
def login():
    """Authenticate user and return an access token"""
    data = request.validated_data
    result = get_user_service().authenticate_user(data['email'], data['password'])

    if not result['success']:
        current_app.logger.warning(f"Failed login for {data['email']}")
        return jsonify({'success': False, 'message': result['error']}), 401

    response = jsonify({
        'success': True,
        'message': 'Login successful',
        'data': {'user': result['user'], 'access_token': result['access_token']}
    })
    set_access_cookies(response, result['access_token'])
    return response, 200


@auth_bp.route('/admin/login', methods=['POST'])
@validate_request_json(LoginSchema())
def admin_login():
    """Authenticate admin and return an access token"""
    data = request.validated_data
    result = get_user_service().authenticate_admin(data['email'], data['password'])

    if not result['success']:
        current_app.logger.warning(f"Failed admin login for {data['email']}")
        return jsonify({'success': False, 'message': result['error']}), 401

    response = jsonify({
        'success': True,
        'message': 'Login successful',
        'data': {'admin': result['admin'], 'access_token': result['access_token']}
    })
    set_access_cookies(response, result['access_token'])
    return response, 200


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify({'success': True, 'data': get_current_principal().to_dict()}), 200


@auth_bp.route('/logout', methods=['POST'])
def logout():
    response = jsonify({'success': True, 'message': 'Logged out successfully'})
    unset_jwt_cookies(response)
    return response, 200
