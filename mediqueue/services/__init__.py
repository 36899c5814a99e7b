from .data_access import (
    QueryResult,
    safe_query,
    probe_connection,
    initialize_database,
)

from .notifications import NotificationChannel, get_channel

from .queue_service import (
    estimate_wait_time,
    queue_position,
    queue_status,
    department_stats,
    call_next,
    expire_stale_visits,
)

__all__ = [
    # Data access
    "QueryResult",
    "safe_query",
    "probe_connection",
    "initialize_database",
    # Notifications
    "NotificationChannel",
    "get_channel",
    # Queue
    "estimate_wait_time",
    "queue_position",
    "queue_status",
    "department_stats",
    "call_next",
    "expire_stale_visits",
]
