# celery_worker.py
"""
Celery entry point bound to the Flask app.

    celery -A celery_worker.celery worker --loglevel=info -Q default,subscriptions
    celery -A celery_worker.celery beat --loglevel=info
"""
from onenumber import create_app
from onenumber.celery_app import create_celery_app

app = create_app()
celery = create_celery_app(app)
