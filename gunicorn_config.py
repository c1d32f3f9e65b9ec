#!/usr/bin/env python3
"""
Gunicorn configuration for Canteen Admin
"""

import os

bind = f"0.0.0.0:{os.environ.get('PORT', '5000')}"

# Caches, the event bus and the poll scheduler live in process memory,
# so one worker serves every request on threads.
workers = 1
worker_class = 'gthread'
threads = int(os.environ.get('GUNICORN_THREADS', '8'))
timeout = 120
keepalive = 5

# Logging
accesslog = 'logs/gunicorn_access.log'
errorlog = 'logs/gunicorn_error.log'
loglevel = 'info'
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s"'

# Process
daemon = False
pidfile = 'logs/gunicorn.pid'

# Limits
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

max_requests = 1000
max_requests_jitter = 50
graceful_timeout = 30
preload_app = False
