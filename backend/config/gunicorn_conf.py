# ==============================================================================
# GUNICORN CONFIGURATION
# gunicorn config.asgi:application -c config/gunicorn_conf.py
# ==============================================================================

import os
import multiprocessing

# ==============================================================================
# WORKERS
# (2 * CPU) + 1 unless GUNICORN_WORKERS is set
# ==============================================================================
CPU_COUNT = multiprocessing.cpu_count()
DEFAULT_WORKERS = (CPU_COUNT * 2) + 1
workers = int(os.getenv("GUNICORN_WORKERS", DEFAULT_WORKERS))

worker_class = "uvicorn.workers.UvicornWorker"

# ==============================================================================
# SOCKET
# ==============================================================================
port = int(os.getenv("PORT", 8000))
bind = [f"0.0.0.0:{port}"]

proc_name = "flowerdrop-api"

# ==============================================================================
# TIMEOUTS
# Geocoding / routing calls are capped by GEO_REQUEST_TIMEOUT, well below this
# ==============================================================================
timeout = int(os.getenv("GUNICORN_TIMEOUT", 60))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", 30))
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", 5))

# ==============================================================================
# LOGGING (stdout/stderr for containers)
# ==============================================================================
access_log_format = '%(h)s %(t)s "%(r)s" %(s)s %(b)s %(D)s rid=%({x-request-id}o)s'
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

# ==============================================================================
# WORKER RECYCLING
# ==============================================================================
max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", 1000))
max_requests_jitter = int(os.getenv("GUNICORN_MAX_REQUESTS_JITTER", 100))

# Trust X-Forwarded-* from the platform proxy
forwarded_allow_ips = "*"

preload_app = True


def on_starting(server):
    server.log.info(f"Starting flowerdrop-api with {workers} {worker_class} workers on port {port}")


def on_exit(server):
    server.log.info("flowerdrop-api shutting down")
