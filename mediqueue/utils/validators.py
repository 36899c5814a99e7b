import json
import re

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_RE = re.compile(r'^\+?[1-9]\d{9,15}$')


def validate_required(value, field_name):
    if value is None or (isinstance(value, str) and not value.strip()):
        return f'{field_name} is required'
    return None


def validate_email(email):
    """Email is optional; only a present value is checked."""
    if not email:
        return None
    if not isinstance(email, str):
        return 'Invalid email format'
    return None if EMAIL_RE.match(email) else 'Invalid email format'


def validate_phone(phone):
    if not phone:
        return 'Phone number is required'
    if not isinstance(phone, str):
        return 'Invalid phone number'
    return None if PHONE_RE.match(re.sub(r'\s', '', phone)) else 'Invalid phone number'


def validate_text(value, field_name):
    """Optional free-text field: None or a string."""
    if value is not None and not isinstance(value, str):
        return f'{field_name} must be text'
    return None


def parse_id(value):
    """Integer row id from a JSON value; None when it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def validate_age(age):
    try:
        age = int(age)
    except (TypeError, ValueError):
        return 'Age must be between 1 and 120'
    if age < 1 or age > 120:
        return 'Age must be between 1 and 120'
    return None


def normalize_phone(phone):
    return re.sub(r'\s', '', phone or '')


def sanitize_input(value):
    if value is None:
        return ''
    return str(value).strip().replace('<', '').replace('>', '')


def safe_json_parse(text, fallback):
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return fallback
