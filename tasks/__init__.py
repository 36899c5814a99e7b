"""
Celery tasks module
Import all tasks here so Celery can discover them
"""
from . import queue_tasks

__all__ = ['queue_tasks']
