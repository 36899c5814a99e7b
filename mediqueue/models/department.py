from mediqueue.extensions import db
from .base import TimestampMixin, _iso


class Department(db.Model, TimestampMixin):
    __tablename__ = 'departments'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False, index=True)  # e.g., general
    display_name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    consultation_fee = db.Column(db.Numeric(10, 2), default=0)
    average_consultation_time = db.Column(db.Integer, default=10)  # minutes
    color_code = db.Column(db.String(7), default='#3B82F6')
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<Department {self.name}>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'display_name': self.display_name,
            'description': self.description,
            'consultation_fee': float(self.consultation_fee or 0),
            'average_consultation_time': self.average_consultation_time,
            'color_code': self.color_code,
            'is_active': self.is_active,
            'created_at': _iso(self.created_at),
        }
