"""
Gunicorn configuration for the CardLink service.
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# Each sync worker holds at most one pooled connection at a time;
# keep workers * DB_POOL_SIZE under the database connection limit
workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'
timeout = 30
keepalive = 5

# Logging
accesslog = '-'  # stdout
errorlog = '-'   # stderr
loglevel = os.getenv('LOG_LEVEL', 'info').lower()
capture_output = True

proc_name = 'cardlink'

preload_app = True

graceful_timeout = 30


def on_starting(server):
    server.log.info("Starting CardLink server...")


def on_exit(server):
    server.log.info("CardLink server shutting down...")
