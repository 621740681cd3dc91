"""
Gunicorn Configuration

Uvicorn workers under Gunicorn for production deployment of the
analytics API. Every worker opens its own database engine in the
application lifespan, so nothing is shared across a fork.
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.getenv("WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = int(os.getenv("MAX_REQUESTS", 10000))
max_requests_jitter = 1000
timeout = 60
graceful_timeout = 30
keepalive = 5

proc_name = "marketplace-analytics-api"

# Logging; the app reconfigures the root logger through structlog
errorlog = "-"
accesslog = None
loglevel = os.getenv("LOG_LEVEL", "info").lower()


def post_fork(server, worker):
    server.log.info("Worker spawned (pid: %s)", worker.pid)


def worker_abort(worker):
    worker.log.warning("Worker aborted (pid: %s), likely a request exceeding %ss", worker.pid, timeout)
