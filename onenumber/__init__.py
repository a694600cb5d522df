# onenumber/__init__.py
import os
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

# Load .env before the config classes read the environment
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")

from onenumber.config import config  # noqa: E402
from onenumber.extensions import db, migrate, jwt, mail, cors  # noqa: E402


def create_app(config_name=None):
    """Flask application factory"""
    app = Flask(__name__)

    config_name = config_name or os.environ.get('FLASK_CONFIG') or os.environ.get('APP_ENV') or 'default'
    app.config.from_object(config.get(config_name, config['default']))

    from onenumber.utils.logging import setup_logging
    setup_logging(app)

    if not app.config.get('SQLALCHEMY_DATABASE_URI'):
        app.logger.error("❌ DATABASE_URL not set")
        raise RuntimeError('DATABASE_URL must be set')

    _init_extensions(app)

    from onenumber.utils.error_handlers import register_error_handlers, register_jwt_handlers
    register_jwt_handlers()
    register_error_handlers(app)

    from onenumber.services.email_service import init_email_templates
    init_email_templates(app)

    from onenumber.api import register_blueprints
    register_blueprints(app)

    from onenumber.cli import register_commands
    register_commands(app)

    # Make sure models are registered for migrations
    from onenumber import models  # noqa: F401

    app.logger.info(f"OneNumber backend startup complete ({config_name})")
    return app


def _init_extensions(app):
    """Initialize Flask extensions"""
    db.init_app(app)
    app.logger.info("✅ Database initialized")

    migrate.init_app(app, db)

    jwt.init_app(app)
    app.logger.info("✅ JWT initialized")

    mail.init_app(app)

    cors.init_app(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)
    app.logger.info("✅ CORS initialized")
