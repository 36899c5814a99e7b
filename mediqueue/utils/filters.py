"""
Helpers for the list endpoints: every filter is optional and all supplied
filters are AND-combined onto the query.
"""
from datetime import datetime, timedelta


def parse_date(date_string):
    """Parse YYYY-MM-DD (or full ISO) into a date; None when empty or invalid."""
    if not date_string:
        return None
    try:
        return datetime.fromisoformat(date_string).date()
    except TypeError:
        return None
    except ValueError:
        try:
            return datetime.strptime(date_string, '%Y-%m-%d').date()
        except ValueError:
            return None


def day_bounds(day):
    """[start, end) datetimes covering one calendar day."""
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)


def contains(term):
    """ilike pattern for a case-insensitive substring match"""
    return f"%{term.strip()}%"
