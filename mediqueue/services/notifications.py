"""
In-memory notification channel.

The application owns a single NotificationChannel (app.extensions['notifications'])
and passes it to whatever publishes toasts; subscribers receive the active
stack after every change.
"""
import logging
import threading
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

NOTIFICATION_KINDS = ('success', 'error', 'warning', 'info')
DEFAULT_DURATION_MS = 5000


@dataclass
class Notification:
    id: str
    kind: str
    title: str
    message: Optional[str] = None
    duration_ms: int = DEFAULT_DURATION_MS
    persistent: bool = False
    created_at: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def to_dict(self):
        return asdict(self)


class TimerScheduler:
    """Runs callbacks on daemon threading.Timer threads."""

    def schedule(self, delay_seconds, callback):
        timer = threading.Timer(delay_seconds, callback)
        timer.daemon = True
        timer.start()
        return timer


class NotificationChannel:
    def __init__(self, scheduler=None, default_duration_ms=DEFAULT_DURATION_MS):
        self._scheduler = scheduler or TimerScheduler()
        self._default_duration_ms = default_duration_ms
        self._lock = threading.RLock()
        self._active: Dict[str, Notification] = {}
        self._timers = {}
        self._subscribers: List[Callable[[List[Notification]], None]] = []

    def publish(self, kind, title, message=None, duration_ms=None, persistent=False):
        """Add a notification and return its id. A duration of 0 disables auto-dismissal."""
        if kind not in NOTIFICATION_KINDS:
            raise ValueError(f"Invalid notification kind: {kind}")
        if not title:
            raise ValueError("Notification title is required")

        if duration_ms is None:
            duration_ms = self._default_duration_ms

        notification = Notification(
            id=uuid.uuid4().hex,
            kind=kind,
            title=title,
            message=message,
            duration_ms=int(duration_ms),
            persistent=bool(persistent),
        )

        with self._lock:
            self._active[notification.id] = notification
            if not notification.persistent and notification.duration_ms > 0:
                self._timers[notification.id] = self._scheduler.schedule(
                    notification.duration_ms / 1000.0,
                    lambda: self._expire(notification.id),
                )

        self._notify()
        return notification.id

    def success(self, title, message=None, **kwargs):
        return self.publish('success', title, message, **kwargs)

    def error(self, title, message=None, **kwargs):
        return self.publish('error', title, message, **kwargs)

    def warning(self, title, message=None, **kwargs):
        return self.publish('warning', title, message, **kwargs)

    def info(self, title, message=None, **kwargs):
        return self.publish('info', title, message, **kwargs)

    def dismiss(self, notification_id):
        """Remove by id. Returns False (and changes nothing) if the id is not active."""
        with self._lock:
            removed = self._active.pop(notification_id, None)
            timer = self._timers.pop(notification_id, None)
        if timer is not None:
            timer.cancel()
        if removed is None:
            return False
        self._notify()
        return True

    def _expire(self, notification_id):
        with self._lock:
            self._timers.pop(notification_id, None)
            removed = self._active.pop(notification_id, None)
        if removed is not None:
            self._notify()

    def clear_all(self):
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
            self._active.clear()
        for timer in timers:
            timer.cancel()
        self._notify()

    def active(self):
        with self._lock:
            return list(self._active.values())

    def subscribe(self, callback):
        """Register a callback; returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self):
        with self._lock:
            snapshot = list(self._active.values())
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception as e:
                logger.error("Notification subscriber failed: %s", e, exc_info=True)


def get_channel(app=None):
    """The application's channel."""
    if app is None:
        from flask import current_app
        app = current_app
    return app.extensions['notifications']
