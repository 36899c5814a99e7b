#!/usr/bin/env python3
"""
Celery Worker Entry Point
Run with: celery -A celery_worker.celery worker --beat --loglevel=info
Or: python celery_worker.py
"""
from celery.schedules import crontab

from mediqueue import create_app
from mediqueue.extensions import celery

# Create Flask app to initialize Celery
app = create_app()

# Import tasks so Celery can discover them
from tasks import queue_tasks  # noqa: E402,F401

# Expire yesterday's unseen tokens shortly after midnight
celery.conf.beat_schedule = {
    'expire-stale-visits': {
        'task': 'tasks.expire_stale_visits',
        'schedule': crontab(hour=0, minute=5),
    },
}

if __name__ == '__main__':
    # For development: run worker directly
    celery.worker_main([
        'worker',
        '--beat',
        '--loglevel=info',
        '--concurrency=2'
    ])
