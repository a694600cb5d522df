# onenumber/config.py
import os
from datetime import timedelta


def _as_bool(value, default=False):
    if value is None:
        return default
    return value.lower() in ['true', 'on', '1', 'yes']


class Config:
    """Base configuration"""

    # Basic Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    APP_ENV = os.environ.get('APP_ENV', 'development')

    # Database settings
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///onenumber.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_recycle': 300,
        'pool_pre_ping': True
    }

    # JWT settings (Authorization header or access_token cookie)
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)
    JWT_TOKEN_LOCATION = ['headers', 'cookies']
    JWT_ACCESS_COOKIE_NAME = 'access_token'
    JWT_COOKIE_CSRF_PROTECT = _as_bool(os.environ.get('JWT_COOKIE_CSRF_PROTECT'), False)

    # CORS settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

    # Frontend and branding used in links and emails
    FRONTEND_URL = os.environ.get('FRONTEND_URL')
    APP_NAME = os.environ.get('APP_NAME', 'OneNumber Web App')
    SUPPORT_EMAIL = os.environ.get('SUPPORT_EMAIL', 'support@onenumber.com')
    LOGO_URL = os.environ.get('LOGO_URL', '')
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL')
    ADMIN_PORTAL_URL = os.environ.get('ADMIN_PORTAL_URL', '')

    # BudPay settings
    BUDPAY_SECRET_KEY = os.environ.get('BUDPAY_SECRET_KEY')
    BUDPAY_BASE_URL = os.environ.get('BUDPAY_BASE_URL', 'https://api.budpay.com/api/v2')
    BUDPAY_TIMEOUT = float(os.environ.get('BUDPAY_TIMEOUT', '10'))

    # Mail settings
    MAIL_SERVER = os.environ.get('MAIL_SERVER', 'localhost')
    MAIL_PORT = int(os.environ.get('MAIL_PORT', '587'))
    MAIL_USE_TLS = _as_bool(os.environ.get('MAIL_USE_TLS'), True)
    MAIL_USERNAME = os.environ.get('MAIL_USERNAME')
    MAIL_PASSWORD = os.environ.get('MAIL_PASSWORD')
    MAIL_DEFAULT_SENDER = os.environ.get('MAIL_DEFAULT_SENDER', 'noreply@onenumber.com')

    # Celery settings
    CELERY_BROKER_URL = os.environ.get('CELERY_BROKER_URL', 'redis://localhost:6379/0')
    CELERY_RESULT_BACKEND = os.environ.get('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0')

    # Phone number reservations
    RESERVATION_MINUTES = int(os.environ.get('RESERVATION_MINUTES', '30'))
    RESERVATION_SWEEP_ENABLED = _as_bool(os.environ.get('RESERVATION_SWEEP_ENABLED'), False)

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = os.environ.get('LOG_FILE')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///dev_onenumber.db'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    APP_ENV = 'production'

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')
    if SQLALCHEMY_DATABASE_URI and SQLALCHEMY_DATABASE_URI.startswith('postgres://'):
        SQLALCHEMY_DATABASE_URI = SQLALCHEMY_DATABASE_URI.replace('postgres://', 'postgresql://')

    JWT_COOKIE_SECURE = True
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '').split(',') if os.environ.get('CORS_ORIGINS') else []


class TestConfig(Config):
    """Testing configuration"""
    TESTING = True
    APP_ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    MAIL_SUPPRESS_SEND = True
    FRONTEND_URL = 'http://localhost:3000'
    BUDPAY_SECRET_KEY = 'sk_test_budpay'
    ADMIN_EMAIL = 'admin@onenumber.test'
    LOG_FILE = None


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestConfig,
    'default': DevelopmentConfig
}
