from mediqueue.extensions import db
from .base import TimestampMixin, _iso

PAYMENT_METHODS = ['cash', 'card', 'upi', 'online', 'insurance']
TRANSACTION_STATUSES = ['pending', 'completed', 'failed', 'refunded']


class PaymentTransaction(db.Model, TimestampMixin):
    __tablename__ = 'payment_transactions'

    id = db.Column(db.Integer, primary_key=True)
    visit_id = db.Column(db.Integer, db.ForeignKey('visits.id'), nullable=False, index=True)
    patient_id = db.Column(db.String(32), db.ForeignKey('patients.id'), nullable=False, index=True)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(db.String(20), nullable=False, default='cash')
    status = db.Column(db.String(20), nullable=False, default='pending', index=True)
    transaction_id = db.Column(db.String(64), nullable=True, index=True)  # gateway / UPI reference
    notes = db.Column(db.Text)
    processed_at = db.Column(db.DateTime, nullable=True)

    patient = db.relationship('Patient', lazy=True)

    def __repr__(self):
        return f"<PaymentTransaction {self.id} - {self.amount} ({self.status})>"

    def to_dict(self, include_visit=False):
        data = {
            'id': self.id,
            'visit_id': self.visit_id,
            'patient_uid': self.patient_id,
            'amount': float(self.amount),
            'payment_method': self.payment_method,
            'status': self.status,
            'transaction_id': self.transaction_id,
            'notes': self.notes,
            'processed_at': _iso(self.processed_at),
            'created_at': _iso(self.created_at),
        }
        if include_visit:
            data['visit'] = self.visit.to_dict(include_patient=True) if self.visit else None
        return data
