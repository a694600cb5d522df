from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from marshmallow import ValidationError

from onenumber.exceptions import OneNumberError, GatewayError, GatewayTimeoutError
from onenumber.extensions import db, jwt


def is_production():
    return current_app.config.get('APP_ENV') == 'production'


def register_error_handlers(app):
    """Register global error handlers"""

    @app.errorhandler(OneNumberError)
    def handle_domain_error(e):
        """Handle errors raised by services"""
        if e.status_code >= 500:
            current_app.logger.error(f"{type(e).__name__}: {e.message}")
            message = e.message
            if is_production() and not isinstance(e, GatewayTimeoutError):
                message = 'An unexpected error occurred'
        else:
            current_app.logger.warning(f"{type(e).__name__}: {e.message}")
            message = e.message
            if is_production() and isinstance(e, GatewayError):
                message = 'Payment provider rejected the request'

        body = {'success': False, 'message': message}
        body.update(e.payload)
        return jsonify(body), e.status_code

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        """Handle Marshmallow validation errors"""
        current_app.logger.warning(f"Validation error: {e.messages}")
        return jsonify({
            'success': False,
            'message': 'Validation failed',
            'errors': e.messages
        }), 400

    @app.errorhandler(StaleDataError)
    def handle_stale_data(e):
        """Handle optimistic concurrency conflicts"""
        db.session.rollback()
        current_app.logger.warning(f"Concurrent update rejected: {str(e)}")
        return jsonify({
            'success': False,
            'message': 'The record was modified by another request, please retry'
        }), 409

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        """Handle database errors"""
        db.session.rollback()
        current_app.logger.error(f"Database error: {str(e)}")
        return jsonify({
            'success': False,
            'message': 'Database operation failed'
        }), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        """Handle HTTP errors"""
        return jsonify({
            'success': False,
            'message': e.description,
            'code': e.code
        }), e.code

    @app.errorhandler(Exception)
    def handle_generic_error(e):
        """Handle unexpected errors"""
        current_app.logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        message = 'An unexpected error occurred' if is_production() else str(e)
        return jsonify({
            'success': False,
            'message': message
        }), 500


def register_jwt_handlers():
    """Return JSON bodies for JWT failures"""

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({'success': False, 'message': 'Authentication required'}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({'success': False, 'message': 'Invalid token'}), 401

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return jsonify({'success': False, 'message': 'Token has expired'}), 401
