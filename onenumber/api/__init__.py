from datetime import datetime

from flask import Blueprint, jsonify, current_app
from sqlalchemy import text

from onenumber.extensions import db

from .auth import auth_bp
from .users import user_bp
from .phone_numbers import phone_number_bp
from .payments import payment_bp
from .subscriptions import subscription_bp
from .notifications import notification_bp

health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """Database connectivity check for load balancers"""
    checks = {
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': current_app.config.get('APP_NAME'),
        'checks': {}
    }

    try:
        db.session.execute(text('SELECT 1'))
        checks['checks']['database'] = 'healthy'
    except Exception as e:
        current_app.logger.error(f"❌ Health check database failure: {e}")
        checks['checks']['database'] = 'unhealthy'
        checks['status'] = 'unhealthy'

    return jsonify(checks), 200 if checks['status'] == 'healthy' else 503


def register_blueprints(app):
    """Register all API blueprints"""
    app.register_blueprint(health_bp, url_prefix='/api/v1')
    app.register_blueprint(auth_bp, url_prefix='/api/v1/auth')
    app.register_blueprint(user_bp, url_prefix='/api/v1/user')
    app.register_blueprint(phone_number_bp, url_prefix='/api/v1/phone-number')
    app.register_blueprint(payment_bp, url_prefix='/api/v1/payment')
    app.register_blueprint(subscription_bp, url_prefix='/api/v1/subscription')
    app.register_blueprint(notification_bp, url_prefix='/api/v1/notification')
