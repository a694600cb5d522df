"""
Gunicorn settings for the OneNumber API.

    gunicorn -c gunicorn.conf.py wsgi:app
"""
import multiprocessing
import os

bind = os.environ.get('GUNICORN_BIND', '127.0.0.1:5000')

# Plain WSGI app: sync workers, sized by WEB_CONCURRENCY when the host sets it
workers = int(os.environ.get('WEB_CONCURRENCY', multiprocessing.cpu_count() * 2 + 1))
worker_class = 'sync'

# A request can wait on one BudPay call (BUDPAY_TIMEOUT, 10s by default)
timeout = int(os.environ.get('GUNICORN_TIMEOUT', '30'))
graceful_timeout = 30
keepalive = 5

max_requests = 1000
max_requests_jitter = 100

# Behind nginx; trust its X-Forwarded-* so get_client_ip sees the payer
forwarded_allow_ips = os.environ.get('FORWARDED_ALLOW_IPS', '127.0.0.1')

proc_name = 'onenumber-backend'
user = os.environ.get('GUNICORN_USER')
group = os.environ.get('GUNICORN_GROUP')

loglevel = os.environ.get('LOG_LEVEL', 'info').lower()
accesslog = '-'
errorlog = '-'
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(M)sms "%(a)s"'

raw_env = [
    'APP_ENV=production',
]


def post_fork(server, worker):
    server.log.info(f"OneNumber worker spawned (pid: {worker.pid})")
