from datetime import date, datetime, timedelta

import pytest

from mediqueue.utils.formatting import (
    DEFAULT_STATUS_STYLE,
    DEFAULT_PAYMENT_STYLE,
    STATUS_STYLES,
    status_color,
    payment_status_color,
    format_currency,
    format_date,
    format_time,
    format_relative_time,
    is_today,
)
from mediqueue.utils.log_masking import mask_phone
from mediqueue.utils.validators import validate_phone, validate_age, sanitize_input, safe_json_parse


@pytest.mark.parametrize('status', list(STATUS_STYLES))
def test_status_color_known_values(status):
    assert status_color(status) == STATUS_STYLES[status]


@pytest.mark.parametrize('status', ['unknown', '', 'WAITING', None, 42, ['waiting']])
def test_status_color_fallback(status):
    assert status_color(status) == DEFAULT_STATUS_STYLE
    assert payment_status_color(status) == DEFAULT_PAYMENT_STYLE


def test_payment_status_color():
    assert payment_status_color('paid') == 'bg-green-100 text-green-800'
    assert payment_status_color('pay_at_clinic') == 'bg-blue-100 text-blue-800'


@pytest.mark.parametrize('amount,expected', [
    (500, '₹500'),
    (0, '₹0'),
    (1500, '₹1,500'),
    (123456.5, '₹1,23,456.5'),
    (12345678, '₹1,23,45,678'),
    ('800.25', '₹800.25'),
    (-2500, '-₹2,500'),
    ('abc', '₹0'),
    (None, '₹0'),
    (float('nan'), '₹0'),
    (float('inf'), '₹0'),
    ('-inf', '₹0'),
])
def test_format_currency(amount, expected):
    assert format_currency(amount) == expected


def test_format_currency_other_symbol():
    assert format_currency(1000, currency='USD') == '$1,000'


def test_format_date_and_time():
    moment = datetime(2026, 3, 5, 14, 5)
    assert format_date(moment) == 'Mar 05, 2026'
    assert format_date('2026-03-05') == 'Mar 05, 2026'
    assert format_time(moment) == '14:05'
    assert format_date('not a date') == 'Invalid date'
    assert format_time(None) == 'Invalid time'


def test_format_relative_time():
    now = datetime(2026, 3, 5, 12, 0)
    assert format_relative_time(now - timedelta(seconds=10), now=now) == 'less than a minute ago'
    assert format_relative_time(now - timedelta(minutes=5), now=now) == '5 minutes ago'
    assert format_relative_time(now + timedelta(hours=3), now=now) == 'in about 3 hours'
    assert format_relative_time('garbage', now=now) == 'Invalid time'


def test_is_today():
    today = date(2026, 3, 5)
    assert is_today(datetime(2026, 3, 5, 23, 59), today=today)
    assert not is_today('2026-03-04', today=today)
    assert not is_today('nope', today=today)


def test_validators():
    assert validate_phone('98765 43210') is None
    assert validate_phone('+919876543210') is None
    assert validate_phone('0123456789') == 'Invalid phone number'
    assert validate_phone('12345') == 'Invalid phone number'
    assert validate_age(0) is not None
    assert validate_age(121) is not None
    assert validate_age('35') is None
    assert sanitize_input('  <b>Asha</b> ') == 'bAsha/b'
    assert safe_json_parse('{"a": 1}', {}) == {'a': 1}
    assert safe_json_parse('{broken', []) == []


def test_mask_phone():
    assert mask_phone('Booked for 9999999999') == 'Booked for [PHONE_REDACTED]'
    assert mask_phone('call +919876543210') == 'call [PHONE_REDACTED]'
    assert mask_phone('token #12') == 'token #12'
