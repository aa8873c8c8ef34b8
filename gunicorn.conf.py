"""
Gunicorn configuration for the Hunter engine API.

  gunicorn -c gunicorn.conf.py

Env vars:
  PORT       — TCP port to bind (default 8000)
  WORKERS    — worker processes (default 2)
  LOG_LEVEL  — shared with the app's own logging (default info)

Per-user locks are per process. With several workers, concurrent
evaluations of the same user are caught by the version check on
level_state / streaks and answered with 409.
"""
import os

wsgi_app = "app.main:app"

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"
workers = int(os.environ.get("WORKERS", "2"))

# Uvicorn's ASGI loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5
timeout = 60
graceful_timeout = 30

# stdout only
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs uid=%({x-user-id}i)s'
