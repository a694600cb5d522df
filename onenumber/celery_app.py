"""
Celery application for OneNumber.

Start a worker and a single beat process with:
    celery -A celery_worker.celery worker --loglevel=info -Q default,subscriptions
    celery -A celery_worker.celery beat --loglevel=info
"""

import os
import logging

from celery import Celery, Task
from flask import has_app_context
from celery.signals import task_prerun, task_postrun, task_failure

logger = logging.getLogger(__name__)


class ContextTask(Task):
    """Make celery tasks work with Flask app context."""
    flask_app = None

    def __call__(self, *args, **kwargs):
        if self.flask_app is None or has_app_context():
            return self.run(*args, **kwargs)
        with self.flask_app.app_context():
            return self.run(*args, **kwargs)


celery_app = Celery('onenumber', task_cls=ContextTask)

celery_config = {
    # Broker and Backend
    'broker_url': os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0'),
    'result_backend': os.getenv('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0'),

    # Serialization
    'task_serializer': 'json',
    'accept_content': ['json'],
    'result_serializer': 'json',

    # Timezone
    'timezone': 'UTC',
    'enable_utc': True,

    'include': [
        'onenumber.tasks.subscription_tasks',
    ],

    # Worker configuration
    'worker_prefetch_multiplier': 1,
    'task_acks_late': True,

    'task_routes': {
        'onenumber.tasks.subscription_tasks.*': {'queue': 'subscriptions'},
    },

    'task_default_queue': 'default',

    # Result backend settings
    'result_expires': 3600,

    # Task execution settings
    'task_time_limit': 900,
    'task_soft_time_limit': 840,

    # Monitoring and logging
    'worker_send_task_events': True,
    'worker_log_format': '[%(asctime)s: %(levelname)s/%(processName)s] %(message)s',
    'worker_task_log_format': '[%(asctime)s: %(levelname)s/%(processName)s][%(task_name)s(%(task_id)s)] %(message)s',
}

celery_app.conf.update(celery_config)


# =============================================================================
# CELERY SIGNALS
# =============================================================================

@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, **kwds):
    logger.info(f"▶️ Starting task: {task.name} (ID: {task_id})")


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, retval=None, state=None, **kwds):
    if state == 'SUCCESS':
        logger.info(f"✅ Completed task: {task.name} (ID: {task_id})")
    else:
        logger.warning(f"⚠️ Task finished with state {state}: {task.name} (ID: {task_id})")


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, traceback=None, einfo=None, **kwds):
    logger.error(f"❌ Task failed: {sender.name} (ID: {task_id}) - {exception}")


# =============================================================================
# FLASK INTEGRATION
# =============================================================================

def create_celery_app(app):
    """Bind Celery to a Flask app: broker settings, beat schedule and app context per task"""
    from onenumber.tasks import get_beat_schedule

    celery_app.conf.update(
        broker_url=app.config.get('CELERY_BROKER_URL', celery_config['broker_url']),
        result_backend=app.config.get('CELERY_RESULT_BACKEND', celery_config['result_backend']),
        beat_schedule=get_beat_schedule(app.config.get('RESERVATION_SWEEP_ENABLED', False)),
    )

    ContextTask.flask_app = app

    for name in celery_app.conf.beat_schedule:
        logger.info(f"⏰ Scheduled: {name}")
    logger.info("🔗 Celery app configured with Flask context")

    return celery_app
