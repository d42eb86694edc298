"""
Production Gunicorn configuration for the signature service
"""

import multiprocessing
import os

# Server socket
bind = "0.0.0.0:5000"
backlog = 2048

# Worker processes
workers = int(os.getenv("WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 1000
max_requests_jitter = 50

keepalive = 5
preload_app = True

# Timeouts; stamping is bounded by STAMPING_TIMEOUT_SECONDS
timeout = 60
graceful_timeout = 30

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = "dealer-signatures"

# Security
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190


def when_ready(server):
    """Called when the server is ready"""
    server.log.info("Signature service ready for traffic")


def worker_int(worker):
    """Called when a worker receives the SIGINT or SIGQUIT signal"""
    worker.log.info(f"Worker {worker.pid} received shutdown signal")


if os.getenv("ENVIRONMENT") == "development":
    workers = 1
    reload = True
    timeout = 300
