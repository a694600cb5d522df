# =============================================================================
# onenumber/utils/auth.py
"""
Authentication utilities: token issuing, principal loading and role checks.
Tokens are accepted from the Authorization header or the access_token cookie.
"""
from functools import wraps
from typing import Optional

from flask import request, g
from flask_jwt_extended import (
    create_access_token, verify_jwt_in_request, get_jwt_identity, get_jwt
)

from onenumber.exceptions import AuthenticationError, AuthorizationError


def issue_access_token(principal) -> str:
    """Create a JWT for a User or Admin"""
    return create_access_token(
        identity=str(principal.id),
        additional_claims={'role': principal.role}
    )


def load_principal(identity: str, role: str):
    """Resolve the token subject to a User or Admin row"""
    from onenumber.extensions import db
    from onenumber.models import User, Admin

    if role == 'admin':
        admin = db.session.get(Admin, identity)
        if admin and admin.is_active:
            return admin
        return None
    return db.session.get(User, identity)


def get_current_principal():
    """Return the authenticated principal for this request, or None"""
    return getattr(g, 'current_user', None)


def is_admin(principal) -> bool:
    return principal is not None and principal.role == 'admin'


def login_required(f):
    """Require a valid token and load the principal into g.current_user"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        principal = load_principal(get_jwt_identity(), get_jwt().get('role', 'user'))
        if principal is None:
            raise AuthenticationError('Authentication required')
        g.current_user = principal
        return f(*args, **kwargs)
    return decorated_function


def authorize_roles(*roles):
    """Restrict a login_required endpoint to the given roles"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            principal = get_current_principal()
            if principal is None:
                raise AuthenticationError('Authentication required')
            if principal.role not in roles:
                raise AuthorizationError(
                    f"Role: {principal.role} is not allowed to access this resource"
                )
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def get_client_ip() -> Optional[str]:
    """Get client IP address"""
    if request.headers.get('X-Forwarded-For'):
        return request.headers.get('X-Forwarded-For').split(',')[0].strip()
    elif request.headers.get('X-Real-IP'):
        return request.headers.get('X-Real-IP')
    else:
        return request.remote_addr


def get_user_agent() -> str:
    """Get user agent string"""
    return request.headers.get('User-Agent', '')
