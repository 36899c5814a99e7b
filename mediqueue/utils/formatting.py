"""
Display helpers shared by the API responses, receipts and prescription exports.
"""
import logging
import math
from datetime import date, datetime

logger = logging.getLogger(__name__)

DEFAULT_STATUS_STYLE = 'bg-gray-100 text-gray-800 border-gray-200'
DEFAULT_PAYMENT_STYLE = 'bg-gray-100 text-gray-800'

STATUS_STYLES = {
    'waiting': 'bg-yellow-100 text-yellow-800 border-yellow-200',
    'checked_in': 'bg-blue-100 text-blue-800 border-blue-200',
    'in_service': 'bg-green-100 text-green-800 border-green-200',
    'completed': 'bg-gray-100 text-gray-800 border-gray-200',
    'held': 'bg-orange-100 text-orange-800 border-orange-200',
    'expired': 'bg-red-100 text-red-800 border-red-200',
}

PAYMENT_STATUS_STYLES = {
    'paid': 'bg-green-100 text-green-800',
    'pending': 'bg-yellow-100 text-yellow-800',
    'pay_at_clinic': 'bg-blue-100 text-blue-800',
    'refunded': 'bg-red-100 text-red-800',
}

CURRENCY_SYMBOLS = {
    'INR': '₹',
    'USD': '$',
    'EUR': '€',
    'GBP': '£',
}


def status_color(status):
    """Style category for a visit status; unknown values get the neutral style."""
    if not isinstance(status, str):
        return DEFAULT_STATUS_STYLE
    return STATUS_STYLES.get(status, DEFAULT_STATUS_STYLE)


def payment_status_color(status):
    """Style category for a payment status; unknown values get the neutral style."""
    if not isinstance(status, str):
        return DEFAULT_PAYMENT_STYLE
    return PAYMENT_STATUS_STYLES.get(status, DEFAULT_PAYMENT_STYLE)


def _group_indian(integer_digits):
    # 1234567 -> 12,34,567
    if len(integer_digits) <= 3:
        return integer_digits
    head, tail = integer_digits[:-3], integer_digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ','.join(groups + [tail])


def format_currency(amount, currency='INR'):
    """
    Format an amount the way en-IN currency formatting does: Indian digit
    grouping, no decimals for whole amounts, at most two otherwise.

    >>> format_currency(123456.5)
    '₹1,23,456.5'
    """
    symbol = CURRENCY_SYMBOLS.get(currency, f'{currency} ')
    try:
        value = round(float(amount), 2)
    except (TypeError, ValueError, OverflowError):
        return f'{symbol}0'
    if not math.isfinite(value):
        return f'{symbol}0'

    sign = '-' if value < 0 else ''
    text = f'{abs(value):.2f}'.rstrip('0').rstrip('.')
    integer_part, _, fraction = text.partition('.')
    grouped = _group_indian(integer_part)
    if fraction:
        grouped = f'{grouped}.{fraction}'
    return f'{sign}{symbol}{grouped}'


def _to_datetime(value):
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        # Accept trailing Z from JS clients
        return datetime.fromisoformat(value.replace('Z', '+00:00'))
    raise TypeError(f'Unsupported date value: {value!r}')


def format_date(value):
    """'Mar 05, 2026' or 'Invalid date'"""
    try:
        return _to_datetime(value).strftime('%b %d, %Y')
    except (TypeError, ValueError) as e:
        logger.debug("Error formatting date %r: %s", value, e)
        return 'Invalid date'


def format_time(value):
    """'14:05' or 'Invalid time'"""
    try:
        return _to_datetime(value).strftime('%H:%M')
    except (TypeError, ValueError) as e:
        logger.debug("Error formatting time %r: %s", value, e)
        return 'Invalid time'


def format_relative_time(value, now=None):
    """Human distance to now, e.g. '5 minutes ago' or 'in 2 hours'."""
    try:
        moment = _to_datetime(value)
    except (TypeError, ValueError):
        return 'Invalid time'

    if now is None:
        now = datetime.now(moment.tzinfo) if moment.tzinfo else datetime.now()
    seconds = int((now - moment).total_seconds())
    future = seconds < 0
    seconds = abs(seconds)

    if seconds < 45:
        phrase = 'less than a minute'
    elif seconds < 90:
        phrase = '1 minute'
    elif seconds < 45 * 60:
        phrase = f'{round(seconds / 60)} minutes'
    elif seconds < 90 * 60:
        phrase = 'about 1 hour'
    elif seconds < 24 * 3600:
        phrase = f'about {round(seconds / 3600)} hours'
    elif seconds < 48 * 3600:
        phrase = '1 day'
    elif seconds < 30 * 24 * 3600:
        phrase = f'{round(seconds / 86400)} days'
    elif seconds < 365 * 24 * 3600:
        months = round(seconds / (30 * 86400))
        phrase = '1 month' if months == 1 else f'{months} months'
    else:
        years = round(seconds / (365 * 86400))
        phrase = 'about 1 year' if years == 1 else f'about {years} years'

    return f'in {phrase}' if future else f'{phrase} ago'


def is_today(value, today=None):
    try:
        moment = _to_datetime(value)
    except (TypeError, ValueError):
        return False
    return moment.date() == (today or date.today())
