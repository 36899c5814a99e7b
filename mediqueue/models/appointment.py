from mediqueue.extensions import db
from .base import TimestampMixin, _iso

APPOINTMENT_STATUSES = ['scheduled', 'confirmed', 'in_progress', 'completed', 'cancelled', 'no_show']
TERMINAL_APPOINTMENT_STATUSES = ['completed', 'cancelled', 'no_show']

# Forward-only progression
_PROGRESSION = ['scheduled', 'confirmed', 'in_progress', 'completed']


class Appointment(db.Model, TimestampMixin):
    __tablename__ = 'appointments'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(32), db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey('doctors.id'), nullable=True, index=True)

    appointment_date = db.Column(db.Date, nullable=False, index=True)
    appointment_time = db.Column(db.String(5), nullable=False)  # e.g., "10:45"
    duration_minutes = db.Column(db.Integer, default=30, nullable=False)

    status = db.Column(db.String(20), default='scheduled', nullable=False, index=True)
    notes = db.Column(db.Text)

    doctor = db.relationship('Doctor', backref='appointments', lazy=True)

    def __repr__(self):
        return f"<Appointment {self.patient_id} on {self.appointment_date} {self.appointment_time}>"

    def can_transition_to(self, new_status):
        """
        Progression is scheduled -> confirmed -> in_progress -> completed and
        never goes backwards. Cancellation is allowed from any non-terminal
        status, no_show only before the consultation starts.
        """
        if new_status not in APPOINTMENT_STATUSES:
            return False
        if self.status in TERMINAL_APPOINTMENT_STATUSES:
            return False
        if new_status == 'cancelled':
            return True
        if new_status == 'no_show':
            return self.status in ('scheduled', 'confirmed')
        return _PROGRESSION.index(new_status) > _PROGRESSION.index(self.status)

    def to_dict(self):
        return {
            'id': self.id,
            'patient_uid': self.patient_id,
            'patient': self.patient.to_dict() if self.patient else None,
            'doctor_id': self.doctor_id,
            'doctor': self.doctor.to_dict() if self.doctor else None,
            'appointment_date': _iso(self.appointment_date),
            'appointment_time': self.appointment_time,
            'duration_minutes': self.duration_minutes,
            'status': self.status,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
