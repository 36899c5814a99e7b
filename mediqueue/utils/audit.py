"""
Audit trail for the clinic desk: every staff write records who did it, from
where, and which patient it touched.
"""
import logging
from typing import Optional

from flask import has_request_context, request

from mediqueue.extensions import db
from mediqueue.models import AuditLog

logger = logging.getLogger(__name__)


def _client_ip():
    if not has_request_context():
        return None
    forwarded = request.headers.get('X-Forwarded-For', '')
    return forwarded.split(',')[0].strip() or request.remote_addr


def log_audit(
    entity_type: str,
    action: str,
    staff_id: Optional[int] = None,
    entity_id=None,
    patient_uid: Optional[str] = None,
    details: Optional[dict] = None,
) -> None:
    """
    Record a staff action. Runs after the change itself is committed and
    never fails the request: a broken audit write is logged and rolled back.
    """
    try:
        entry = AuditLog(
            staff_id=staff_id,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            action=action,
            patient_uid=patient_uid,
            ip_address=_client_ip(),
            details=details,
        )
        db.session.add(entry)
        db.session.commit()
    except Exception as e:
        logger.warning("Could not record %s %s for staff %s: %s", entity_type, action, staff_id, e)
        db.session.rollback()


def audit_trail(patient_uid=None, entity_type=None, entity_id=None, limit=100):
    """Newest-first audit rows, optionally narrowed to a patient or an entity."""
    query = AuditLog.query
    if patient_uid:
        query = query.filter(AuditLog.patient_uid == patient_uid.strip().upper())
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditLog.entity_id == str(entity_id))
    return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
