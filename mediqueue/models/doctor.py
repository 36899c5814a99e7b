from mediqueue.extensions import db
from .base import TimestampMixin, _iso


class Doctor(db.Model, TimestampMixin):
    __tablename__ = 'doctors'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    specialization = db.Column(db.String(50), nullable=False, index=True)  # department name
    qualification = db.Column(db.String(120))
    experience_years = db.Column(db.Integer, default=0)
    consultation_fee = db.Column(db.Numeric(10, 2), default=0)
    status = db.Column(db.String(20), default='active', nullable=False)  # active, inactive

    def __repr__(self):
        return f"<Doctor {self.name} - {self.specialization}>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'specialization': self.specialization,
            'qualification': self.qualification,
            'experience_years': self.experience_years,
            'consultation_fee': float(self.consultation_fee or 0),
            'status': self.status,
            'created_at': _iso(self.created_at),
        }
