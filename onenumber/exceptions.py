class OneNumberError(Exception):
    """Base exception for domain errors surfaced over HTTP"""
    status_code = 500

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}


class ValidationError(OneNumberError):
    """Exception for missing or malformed input"""
    status_code = 400


class AuthenticationError(OneNumberError):
    """Exception for requests without a valid identity"""
    status_code = 401


class AuthorizationError(OneNumberError):
    """Exception for role or ownership mismatches"""
    status_code = 403


class NotFoundError(OneNumberError):
    """Exception for missing records"""
    status_code = 404


class ConflictError(OneNumberError):
    """Exception for already-assigned or already-subscribed state"""
    status_code = 409


class ConfigurationError(OneNumberError):
    """Exception for configuration-related errors"""
    status_code = 500


class GatewayError(OneNumberError):
    """Exception for payment gateway errors"""
    status_code = 502


class GatewayTimeoutError(GatewayError):
    """Exception for payment gateway timeouts"""
    status_code = 504
