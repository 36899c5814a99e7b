"""
Visit model
One Visit = one queue token (STN) for one patient in one department on one day.
"""
from mediqueue.extensions import db
from .base import TimestampMixin, _iso

VISIT_STATUSES = ['waiting', 'checked_in', 'in_service', 'completed', 'held', 'expired']
PAYMENT_STATUSES = ['paid', 'pending', 'pay_at_clinic', 'refunded']

# Statuses still occupying a place in the queue
QUEUED_STATUSES = ['waiting', 'checked_in']
TERMINAL_VISIT_STATUSES = ['completed', 'expired']

# Allowed moves between visit statuses
VISIT_TRANSITIONS = {
    'waiting': {'checked_in', 'in_service', 'held', 'expired'},
    'checked_in': {'in_service', 'held', 'expired'},
    'in_service': {'completed', 'held'},
    'held': {'waiting', 'checked_in', 'in_service', 'expired'},
    'completed': set(),
    'expired': set(),
}


class Visit(db.Model, TimestampMixin):
    __tablename__ = 'visits'
    __table_args__ = (
        db.UniqueConstraint('department', 'visit_date', 'stn', name='uq_visit_department_day_stn'),
    )

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(32), db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey('doctors.id'), nullable=True, index=True)

    stn = db.Column(db.Integer, nullable=False)
    department = db.Column(db.String(50), nullable=False, index=True)
    visit_date = db.Column(db.Date, nullable=False, index=True)

    status = db.Column(db.String(20), default='waiting', nullable=False, index=True)
    payment_status = db.Column(db.String(20), default='pay_at_clinic', nullable=False, index=True)

    qr_payload = db.Column(db.Text)

    doctor = db.relationship('Doctor', backref='visits', lazy=True)
    transactions = db.relationship('PaymentTransaction', backref='visit', lazy='dynamic')

    def __repr__(self):
        return f"<Visit {self.id} - {self.department} #{self.stn} ({self.status})>"

    def can_transition_to(self, new_status):
        if new_status == self.status:
            return True
        return new_status in VISIT_TRANSITIONS.get(self.status, set())

    def has_completed_payment(self):
        from .payment import PaymentTransaction
        return self.transactions.filter(PaymentTransaction.status == 'completed').count() > 0

    def to_dict(self, include_patient=False):
        data = {
            'id': self.id,
            'patient_uid': self.patient_id,
            'stn': self.stn,
            'department': self.department,
            'visit_date': _iso(self.visit_date),
            'status': self.status,
            'payment_status': self.payment_status,
            'doctor_id': self.doctor_id,
            'doctor': self.doctor.to_dict() if self.doctor else None,
            'qr_payload': self.qr_payload,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
        if include_patient:
            data['patient'] = self.patient.to_dict() if self.patient else None
        return data
