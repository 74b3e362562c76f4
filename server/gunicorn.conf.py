"""Gunicorn configuration for production deployment.

Bind address, worker count and log level come from the same Settings the
application reads, so `.env` stays the single source.

Usage:
    gunicorn main:app -c gunicorn.conf.py
"""
import os

from core.config import Settings

settings = Settings()

bind = f"{settings.host}:{settings.port}"

# One SQLite writer at a time; scale workers only on a server database
workers = 1 if settings.is_sqlite else settings.workers
worker_class = "uvicorn.workers.UvicornWorker"

# Upstream simulation runs can take a while
timeout = int(os.getenv("GUNICORN_TIMEOUT", str(settings.simulation_timeout * 4)))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", "5"))

max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", "10000"))
max_requests_jitter = int(os.getenv("GUNICORN_MAX_REQUESTS_JITTER", "1000"))

accesslog = None if settings.debug else "-"
errorlog = "-"
loglevel = settings.log_level.lower()

proc_name = "mediate-server"

# Each worker runs its own cleanup loop and connection pool
preload_app = False
