"""
Queue metrics and token management.

Positions and wait estimates are derived on every request from the visits
table; nothing about the queue is stored besides each visit's STN and status.
"""
import json
import logging
import secrets
import string
import time
from datetime import date

from flask import current_app

from mediqueue.extensions import db
from mediqueue.models import Visit, Department, Doctor
from mediqueue.models.visit import QUEUED_STATUSES

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def estimate_wait_time(position, avg_service_time=10):
    """Minutes until a token at `position` is seen; never negative."""
    return max(0, position * avg_service_time)


def queue_position(user_token, now_serving):
    """Tokens ahead of `user_token`; never negative."""
    return max(0, user_token - now_serving)


def queue_message(total_waiting):
    if total_waiting == 0:
        return "No Queue - Walk In!"
    if total_waiting <= 3:
        return "Short Queue - Quick Service"
    if total_waiting <= 8:
        return "Moderate Queue - Book Now"
    return "Busy - Plan Ahead"


def _to_base36(number):
    if number == 0:
        return '0'
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return ''.join(reversed(digits))


def generate_uid(prefix=None):
    """Clinic-prefixed patient UID, e.g. CLN1-LX2K9A4F7Q3B."""
    if prefix is None:
        prefix = current_app.config.get('CLINIC_UID_PREFIX', 'CLN1')
    timestamp = _to_base36(int(time.time() * 1000))
    random_part = ''.join(secrets.choice(_BASE36) for _ in range(6))
    return f"{prefix}-{timestamp}{random_part}".upper()


def build_qr_payload(patient_uid, stn, department, visit_date):
    return json.dumps({
        'uid': patient_uid,
        'stn': stn,
        'department': department,
        'date': visit_date.isoformat(),
    }, sort_keys=True)


def next_stn(department, visit_date):
    current = db.session.query(db.func.max(Visit.stn)).filter(
        Visit.department == department,
        Visit.visit_date == visit_date,
    ).scalar()
    return (current or 0) + 1


def now_serving(department, visit_date):
    """
    STN currently being attended: highest STN in service, otherwise the
    highest completed STN, otherwise 0.
    """
    base = db.session.query(db.func.max(Visit.stn)).filter(
        Visit.department == department,
        Visit.visit_date == visit_date,
    )
    serving = base.filter(Visit.status == 'in_service').scalar()
    if serving:
        return serving
    return base.filter(Visit.status == 'completed').scalar() or 0


def queue_status(department, visit_date=None, user_stn=None):
    visit_date = visit_date or date.today()
    avg_service_time = current_app.config.get('AVG_SERVICE_TIME_MINUTES', 10)

    counts = dict(
        db.session.query(Visit.status, db.func.count(Visit.id))
        .filter(Visit.department == department, Visit.visit_date == visit_date)
        .group_by(Visit.status)
        .all()
    )
    serving = now_serving(department, visit_date)

    status = {
        'department': department,
        'date': visit_date.isoformat(),
        'now_serving': serving,
        'total_waiting': sum(counts.get(s, 0) for s in QUEUED_STATUSES),
        'total_in_service': counts.get('in_service', 0),
        'total_completed': counts.get('completed', 0),
        'total_held': counts.get('held', 0),
        'refresh_seconds': current_app.config.get('QUEUE_REFRESH_SECONDS', 15),
    }

    if user_stn is not None:
        position = queue_position(user_stn, serving)
        status['your_token'] = user_stn
        status['position'] = position
        status['estimated_wait_minutes'] = estimate_wait_time(position, avg_service_time)
        # Progress bar fill between first token and the user's token
        status['progress_percent'] = min(100, max(0, round((serving - 1) / user_stn * 100))) if user_stn > 0 else 0

    return status


def completion_percent(completed, waiting):
    """Completed tokens as a percentage of completed plus waiting, rounded half up."""
    if completed <= 0:
        return 0
    return int(completed * 100 / (completed + waiting) + 0.5)


def department_stats(visit_date=None):
    """Per-department queue figures for every active department, with totals."""
    visit_date = visit_date or date.today()
    departments = Department.query.filter_by(is_active=True).order_by(Department.display_name).all()

    stats = []
    for dept in departments:
        status = queue_status(dept.name, visit_date)
        avg = dept.average_consultation_time or current_app.config.get('AVG_SERVICE_TIME_MINUTES', 10)
        stats.append({
            'department': dept.name,
            'display_name': dept.display_name,
            'color_code': dept.color_code,
            'now_serving': status['now_serving'],
            'total_waiting': status['total_waiting'],
            'total_completed': status['total_completed'],
            'completion_percent': completion_percent(status['total_completed'], status['total_waiting']),
            'doctor_count': Doctor.query.filter_by(specialization=dept.name, status='active').count(),
            'average_wait_time': avg,
            'estimated_wait_for_new': estimate_wait_time(status['total_waiting'], avg),
            'message': queue_message(status['total_waiting']),
        })

    return {
        'date': visit_date.isoformat(),
        'departments': stats,
        'total_waiting': sum(s['total_waiting'] for s in stats),
        'total_completed': sum(s['total_completed'] for s in stats),
        'average_wait_time': (
            sum(s['average_wait_time'] for s in stats) / len(stats) if stats else 0
        ),
    }


def call_next(department, visit_date=None):
    """
    Complete whoever is in service in the department and move the lowest
    queued STN into service. Returns (completed_visits, next_visit_or_None).
    """
    visit_date = visit_date or date.today()

    in_service = Visit.query.filter_by(
        department=department, visit_date=visit_date, status='in_service'
    ).all()
    for visit in in_service:
        visit.status = 'completed'

    upcoming = Visit.query.filter(
        Visit.department == department,
        Visit.visit_date == visit_date,
        Visit.status.in_(QUEUED_STATUSES),
    ).order_by(Visit.stn.asc()).first()
    if upcoming:
        upcoming.status = 'in_service'

    db.session.commit()
    logger.info(
        "Queue %s advanced: completed=%s now_serving=%s",
        department, [v.stn for v in in_service], upcoming.stn if upcoming else None,
    )
    return in_service, upcoming


def expire_stale_visits(today=None):
    """Mark visits from earlier days that never got seen as expired."""
    today = today or date.today()
    stale = Visit.query.filter(
        Visit.visit_date < today,
        Visit.status.in_(QUEUED_STATUSES + ['held']),
    ).all()
    for visit in stale:
        visit.status = 'expired'
    db.session.commit()
    return len(stale)
