from .health import health_bp
from .auth import auth_bp
from .booking import booking_bp
from .queue import queue_bp
from .admin import admin_bp
from .appointment import appointment_bp
from .billing import billing_bp
from .patient import patient_bp
from .prescription import prescription_bp
from .notification import notification_bp

__all__ = ['health_bp', 'auth_bp', 'booking_bp', 'queue_bp', 'admin_bp', 'appointment_bp', 'billing_bp', 'patient_bp', 'prescription_bp', 'notification_bp']
