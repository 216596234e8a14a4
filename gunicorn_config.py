"""
Gunicorn configuration for the student portal API

Usage:
    gunicorn -c gunicorn_config.py studentportal.wsgi:application
"""

import multiprocessing

from decouple import config

# Server socket
bind = config('GUNICORN_BIND', default='127.0.0.1:8000')

# Worker processes
workers = config('GUNICORN_WORKERS', default=multiprocessing.cpu_count() * 2 + 1, cast=int)
worker_class = "sync"
# Uploads may wait STORAGE_TIMEOUT on the remote store before falling back to disk
timeout = config('GUNICORN_TIMEOUT', default=90, cast=int)
keepalive = 2

# Logging
accesslog = config('GUNICORN_ACCESS_LOG', default='-')
errorlog = config('GUNICORN_ERROR_LOG', default='-')
loglevel = "info"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

proc_name = "studentportal"

# Server mechanics
daemon = False
umask = 0o022
tmp_upload_dir = None

# Each worker builds its own storage client session in AppConfig.ready()
preload_app = False

max_requests = 1000
max_requests_jitter = 50
graceful_timeout = 30
