import re
import uuid
from functools import wraps
from flask import request, jsonify
from marshmallow import ValidationError

PHONE_NUMBER_PATTERN = re.compile(r'^\+?[0-9][0-9\- ()]{5,24}$')


def validate_email(email):
    """Validate email format"""
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return re.match(pattern, email or '') is not None


def validate_phone_number(phone):
    """Accept digits with optional +, dashes, spaces and brackets"""
    if not phone:
        return False
    return PHONE_NUMBER_PATTERN.match(phone.strip()) is not None


def is_valid_id(value):
    """Record ids are UUID strings"""
    if not value:
        return False
    try:
        uuid.UUID(str(value))
        return True
    except ValueError:
        return False


def sanitize_string(text, max_length=None):
    """Sanitize text input"""
    if not text:
        return None

    text = str(text).strip()
    text = text.replace('\x00', '')

    if max_length and len(text) > max_length:
        text = text[:max_length]

    return text


def validate_request_json(schema):
    """Decorator to validate JSON request data"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                if not request.is_json:
                    return jsonify({
                        'success': False,
                        'message': 'Content-Type must be application/json'
                    }), 400

                json_data = request.get_json(silent=True)
                if json_data is None:
                    return jsonify({
                        'success': False,
                        'message': 'Invalid JSON'
                    }), 400

                request.validated_data = schema.load(json_data)

                return f(*args, **kwargs)

            except ValidationError as e:
                return jsonify({
                    'success': False,
                    'message': 'Validation failed',
                    'errors': e.messages
                }), 400

        return decorated_function
    return decorator
