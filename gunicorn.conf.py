# Gunicorn settings for the GeM Tender Portal API

import os

bind = f"0.0.0.0:{os.getenv('PORT', 8000)}"

# Tender caches live in each worker process and are not shared between them
workers = int(os.getenv("WEB_CONCURRENCY", "1"))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = int(os.getenv("GUNICORN_TIMEOUT", "120"))
graceful_timeout = 30
keepalive = 5

# A recycled worker starts with empty caches
max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", "2000"))
max_requests_jitter = 200

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(D)sus'

proc_name = "gem-portal"

# Uploads are capped at 5MB; headers stay at gunicorn defaults
limit_request_line = 4094
limit_request_fields = 100

preload_app = False
