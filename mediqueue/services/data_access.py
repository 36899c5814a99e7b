"""
Data-access shim around the SQLAlchemy session.

safe_query() turns any failure of a query into a uniform QueryResult instead
of an exception; probe_connection() checks the database is reachable (bounded
retries) and seeds reference rows on first success.
"""
import logging
import time
from collections import namedtuple

from flask import current_app

from mediqueue.extensions import db
from mediqueue.models import Department, ClinicSetting

logger = logging.getLogger(__name__)

NOT_CONFIGURED = 'not configured'

QueryResult = namedtuple('QueryResult', ['data', 'error'])

DEFAULT_DEPARTMENTS = [
    {
        'name': 'general',
        'display_name': 'General Medicine',
        'description': 'General medical consultation and treatment',
        'consultation_fee': 500,
        'average_consultation_time': 15,
        'color_code': '#3B82F6',
    },
    {
        'name': 'cardiology',
        'display_name': 'Cardiology',
        'description': 'Heart and cardiovascular system treatment',
        'consultation_fee': 800,
        'average_consultation_time': 20,
        'color_code': '#EF4444',
    },
    {
        'name': 'orthopedics',
        'display_name': 'Orthopedics',
        'description': 'Bone, joint, and muscle treatment',
        'consultation_fee': 700,
        'average_consultation_time': 18,
        'color_code': '#10B981',
    },
]

DEFAULT_SETTINGS = [
    {
        'setting_key': 'clinic_name',
        'setting_value': 'MediQueue Clinic',
        'description': 'Name of the clinic',
    },
    {
        'setting_key': 'maintenance_mode',
        'setting_value': False,
        'description': 'Enable maintenance mode',
    },
    {
        'setting_key': 'auto_refresh_interval',
        'setting_value': 30,
        'description': 'Auto refresh interval in seconds',
    },
]


def is_configured():
    return bool(current_app.config.get('DATA_SERVICE_CONFIGURED'))


def safe_query(query_fn):
    """
    Run a zero-argument query callable.

    Returns QueryResult(data, None) on success and QueryResult(None, message)
    on any failure. Nothing is attempted when the database is not configured.
    """
    if not is_configured():
        return QueryResult(None, NOT_CONFIGURED)

    try:
        return QueryResult(query_fn(), None)
    except Exception as e:
        logger.error("Database query error: %s", e, exc_info=True)
        db.session.rollback()
        return QueryResult(None, str(e) or 'Database operation failed')


def initialize_database():
    """
    Insert default departments and clinic settings when their tables are
    empty. Safe to call on every startup.
    """
    if Department.query.count() == 0:
        for dept in DEFAULT_DEPARTMENTS:
            db.session.add(Department(is_active=True, **dept))
        db.session.commit()
        logger.info("Seeded %d default departments", len(DEFAULT_DEPARTMENTS))

    if ClinicSetting.query.count() == 0:
        for item in DEFAULT_SETTINGS:
            setting = ClinicSetting(
                setting_key=item['setting_key'],
                setting_type='general',
                description=item['description'],
            )
            setting.setting_value = item['setting_value']
            db.session.add(setting)
        db.session.commit()
        logger.info("Seeded %d default clinic settings", len(DEFAULT_SETTINGS))

    return True


def probe_connection(retries=None, backoff=None, sleep=time.sleep):
    """
    Check the database answers, waiting backoff * attempt seconds between
    attempts. Seeds reference rows on the first successful attempt.
    """
    if not is_configured():
        return False

    if retries is None:
        retries = current_app.config.get('DB_CONNECT_RETRIES', 3)
    if backoff is None:
        backoff = current_app.config.get('DB_CONNECT_BACKOFF_SECONDS', 1)

    for attempt in range(1, retries + 1):
        try:
            db.session.execute(db.select(db.func.count(Department.id)))
            initialize_database()
            return True
        except Exception as e:
            db.session.rollback()
            logger.warning("Connection attempt %d/%d failed: %s", attempt, retries, e)
            if attempt < retries:
                sleep(backoff * attempt)

    logger.error("Database unreachable after %d attempts", retries)
    return False
