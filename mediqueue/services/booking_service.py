"""
Token booking: find-or-create the patient by phone, then issue a Visit with the
next STN for the department and day.
"""
import logging
from datetime import date

from flask import current_app

from mediqueue.extensions import db
from mediqueue.models import Patient, Visit, Department
from mediqueue.services.queue_service import (
    generate_uid,
    next_stn,
    build_qr_payload,
    queue_status,
)
from mediqueue.utils.validators import (
    validate_required,
    validate_phone,
    validate_email,
    validate_age,
    validate_text,
    parse_id,
    normalize_phone,
    sanitize_input,
)

logger = logging.getLogger(__name__)


class BookingError(Exception):
    """Invalid booking request; message is safe to show to the patient."""

    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def find_or_create_patient(name, phone, age=None, email=None):
    """
    Patient with this phone number, created if absent. Returns (patient, created).
    An existing patient's stored details are left untouched.
    """
    phone = normalize_phone(phone)
    patient = Patient.query.filter_by(phone=phone).first()
    if patient:
        return patient, False

    patient = Patient(
        id=generate_uid(),
        name=sanitize_input(name),
        age=int(age) if age else None,
        phone=phone,
        email=email or None,
    )
    db.session.add(patient)
    db.session.flush()
    logger.info("Created patient %s", patient.id)
    return patient, True


def validate_booking(data):
    if not isinstance(data, dict):
        raise BookingError('Request body must be a JSON object')

    for field, label in (('name', 'Name'), ('phone', 'Phone'), ('department', 'Department')):
        error = validate_required(data.get(field), label) or validate_text(data.get(field), label)
        if error:
            raise BookingError(error)

    error = validate_phone(data['phone']) or validate_email(data.get('email'))
    if not error and data.get('age') not in (None, ''):
        error = validate_age(data.get('age'))
    if not error and data.get('doctor_id') not in (None, '') and parse_id(data['doctor_id']) is None:
        error = 'Invalid doctor_id'
    if error:
        raise BookingError(error)


def book_token(data, visit_date=None):
    """
    Book a queue token. Returns (patient, visit, patient_created).

    payment_method 'online' leaves the visit 'pending' until the gateway
    confirms; anything else means the patient pays at the clinic.
    """
    validate_booking(data)
    visit_date = visit_date or date.today()

    department_name = data['department'].strip().lower()
    department = Department.query.filter_by(name=department_name, is_active=True).first()
    if not department:
        raise BookingError(f'Department "{department_name}" not found', 404)

    patient, created = find_or_create_patient(
        data['name'], data['phone'], data.get('age'), data.get('email')
    )

    stn = next_stn(department.name, visit_date)
    visit = Visit(
        patient_id=patient.id,
        stn=stn,
        department=department.name,
        visit_date=visit_date,
        status='waiting',
        payment_status='pending' if data.get('payment_method') == 'online' else 'pay_at_clinic',
        doctor_id=parse_id(data.get('doctor_id')),
        qr_payload=build_qr_payload(patient.id, stn, department.name, visit_date),
    )
    db.session.add(visit)
    db.session.commit()

    logger.info("Booked %s token #%d for patient %s", department.name, stn, patient.id)
    return patient, visit, created


def booking_summary(patient, visit):
    status = queue_status(visit.department, visit.visit_date, user_stn=visit.stn)
    return {
        'patient': patient.to_dict(),
        'visit': visit.to_dict(),
        'uid': patient.id,
        'stn': visit.stn,
        'qr_payload': visit.qr_payload,
        'now_serving': status['now_serving'],
        'position': status['position'],
        'estimated_wait_minutes': status['estimated_wait_minutes'],
        'clinic_name': current_app.config.get('CLINIC_NAME'),
    }
