import json

from mediqueue.extensions import db
from .base import TimestampMixin, _iso


class Patient(db.Model, TimestampMixin):
    """
    Patient record. The clinic-prefixed UID (e.g. CLN1-LX2K9A4F7Q) is the
    primary key and the only identifier used for lookups and joins.
    """
    __tablename__ = 'patients'

    id = db.Column(db.String(32), primary_key=True)  # UID
    name = db.Column(db.String(120), nullable=False)
    age = db.Column(db.Integer)
    phone = db.Column(db.String(20), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), nullable=True)
    address = db.Column(db.Text)
    emergency_contact = db.Column(db.String(50))
    blood_group = db.Column(db.String(5))

    # JSON lists
    allergies_json = db.Column(db.Text, nullable=True)
    medical_conditions_json = db.Column(db.Text, nullable=True)

    visits = db.relationship('Visit', backref='patient', lazy='dynamic')
    appointments = db.relationship('Appointment', backref='patient', lazy='dynamic')

    def __repr__(self):
        return f"<Patient {self.name} ({self.id})>"

    @property
    def uid(self):
        return self.id

    @staticmethod
    def _load_list(raw):
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return []
        return data if isinstance(data, list) else []

    @staticmethod
    def _dump_list(values):
        # Set semantics, first occurrence wins
        cleaned = []
        for value in values or []:
            value = str(value).strip()
            if value and value not in cleaned:
                cleaned.append(value)
        return json.dumps(cleaned) if cleaned else None

    @property
    def allergies(self):
        return self._load_list(self.allergies_json)

    @allergies.setter
    def allergies(self, values):
        self.allergies_json = self._dump_list(values)

    @property
    def medical_conditions(self):
        return self._load_list(self.medical_conditions_json)

    @medical_conditions.setter
    def medical_conditions(self, values):
        self.medical_conditions_json = self._dump_list(values)

    def to_dict(self):
        return {
            'uid': self.id,
            'name': self.name,
            'age': self.age,
            'phone': self.phone,
            'email': self.email,
            'address': self.address,
            'emergency_contact': self.emergency_contact,
            'blood_group': self.blood_group,
            'allergies': self.allergies,
            'medical_conditions': self.medical_conditions,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }
