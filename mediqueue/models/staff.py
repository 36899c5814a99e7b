from mediqueue.extensions import db, bcrypt
from .base import TimestampMixin, _iso

STAFF_ROLES = ['admin', 'receptionist', 'doctor']


class Staff(db.Model, TimestampMixin):
    __tablename__ = 'staff'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    phone = db.Column(db.String(20))

    # Possible values: 'admin', 'receptionist', 'doctor'
    role = db.Column(db.String(20), nullable=False, index=True)
    # Doctor profile used when this account records prescriptions
    doctor_id = db.Column(db.Integer, db.ForeignKey('doctors.id'), nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    last_login = db.Column(db.DateTime, nullable=True)
    login_count = db.Column(db.Integer, default=0)

    doctor = db.relationship('Doctor', lazy=True)

    def set_password(self, password):
        """Hash and set password"""
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        """Check if provided password matches hash"""
        return bcrypt.check_password_hash(self.password_hash, password)

    def has_any_role(self, *role_names):
        return self.role in role_names

    def __repr__(self):
        return f"<Staff {self.username} ({self.first_name} {self.last_name}) - {self.role}>"

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'phone': self.phone,
            'role': self.role,
            'doctor_id': self.doctor_id,
            'is_active': self.is_active,
            'last_login': _iso(self.last_login),
            'login_count': self.login_count,
        }
