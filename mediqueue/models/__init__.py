from .department import Department
from .doctor import Doctor
from .patient import Patient
from .visit import Visit
from .appointment import Appointment
from .medical_history import MedicalHistory
from .payment import PaymentTransaction
from .clinic_setting import ClinicSetting
from .staff import Staff
from .audit_log import AuditLog

__all__ = ["Department", "Doctor", "Patient", "Visit", "Appointment", "MedicalHistory", "PaymentTransaction", "ClinicSetting", "Staff", "AuditLog"]
