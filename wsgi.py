"""
WSGI entry point for the dashboard API

    gunicorn wsgi:app --workers 1 --bind 0.0.0.0:$PORT

Keep one worker with the scheduler (SCHEDULER_ENABLED=false on the rest)
so the delta sync job is not started once per process.
"""

from application import app

__all__ = ['app']
