"""
Who changed what at the clinic desk: one row per staff mutation or login.
"""
import json
from datetime import datetime

from mediqueue.extensions import db


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True, index=True)
    entity_type = db.Column(db.String(32), nullable=False, index=True)  # visit, queue, payment, prescription...
    entity_id = db.Column(db.String(64), nullable=True, index=True)
    action = db.Column(db.String(32), nullable=False)
    # Set whenever the change concerns one patient, so their trail is one query
    patient_uid = db.Column(db.String(32), db.ForeignKey("patients.id"), nullable=True, index=True)
    ip_address = db.Column(db.String(45), nullable=True)
    details_json = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    staff = db.relationship("Staff", lazy="joined")

    @property
    def details(self):
        if not self.details_json:
            return {}
        try:
            return json.loads(self.details_json)
        except ValueError:
            return {}

    @details.setter
    def details(self, value):
        self.details_json = json.dumps(value, default=str) if value else None

    def to_dict(self):
        return {
            "id": self.id,
            "staff_id": self.staff_id,
            "staff_username": self.staff.username if self.staff else None,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
            "patient_uid": self.patient_uid,
            "ip_address": self.ip_address,
            "details": self.details,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
