from mediqueue.extensions import db
from .base import TimestampMixin, _iso


class MedicalHistory(db.Model, TimestampMixin):
    """
    Outcome of one consultation: diagnosis, prescription text and notes.
    Rows are only ever appended.
    """

    __tablename__ = "medical_history"

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(
        db.String(32), db.ForeignKey("patients.id"), nullable=False, index=True
    )
    visit_id = db.Column(
        db.Integer, db.ForeignKey("visits.id"), nullable=True, index=True
    )
    doctor_id = db.Column(
        db.Integer, db.ForeignKey("doctors.id"), nullable=True, index=True
    )

    diagnosis = db.Column(db.Text, nullable=True)
    prescription = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    patient = db.relationship("Patient", backref=db.backref("medical_history", lazy="dynamic"), lazy=True)
    visit = db.relationship("Visit", backref="medical_history", lazy=True)
    doctor = db.relationship("Doctor", lazy=True)

    def __repr__(self):
        return f"<MedicalHistory {self.id} - Patient: {self.patient_id}>"

    def to_dict(self):
        return {
            "id": self.id,
            "patient_uid": self.patient_id,
            "visit_id": self.visit_id,
            "visit": self.visit.to_dict() if self.visit else None,
            "doctor_id": self.doctor_id,
            "doctor": self.doctor.to_dict() if self.doctor else None,
            "diagnosis": self.diagnosis,
            "prescription": self.prescription,
            "notes": self.notes,
            "created_at": _iso(self.created_at),
        }
