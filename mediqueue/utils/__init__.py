from .decorators import require_role, current_staff

from .audit import log_audit

from .formatting import (
    status_color,
    payment_status_color,
    format_currency,
    format_date,
    format_time,
    format_relative_time,
    is_today,
)

from .filters import parse_date, day_bounds, contains

__all__ = [
    # Decorators
    "require_role",
    "current_staff",
    # Audit
    "log_audit",
    # Formatting
    "status_color",
    "payment_status_color",
    "format_currency",
    "format_date",
    "format_time",
    "format_relative_time",
    "is_today",
    # Filters
    "parse_date",
    "day_bounds",
    "contains",
]
