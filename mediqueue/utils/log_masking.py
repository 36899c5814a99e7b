"""
Logging filter that keeps patient phone numbers out of log files.
"""
import logging
import re

PHONE_PATTERNS = [
    re.compile(r'\+91\d{10}'),
    re.compile(r'\b\d{10}\b'),
]


def mask_phone(text: str) -> str:
    for pattern in PHONE_PATTERNS:
        text = pattern.sub('[PHONE_REDACTED]', text)
    return text


class PhoneMaskingFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = mask_phone(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(
                mask_phone(a) if isinstance(a, str) else a for a in record.args
            )
        return True
