from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import or_
from mediqueue.extensions import db
from mediqueue.models import Appointment, Patient, Doctor
from mediqueue.models.appointment import APPOINTMENT_STATUSES
from mediqueue.services.booking_service import find_or_create_patient
from mediqueue.services.notifications import get_channel
from mediqueue.utils.decorators import require_role
from mediqueue.utils.audit import log_audit
from mediqueue.utils.filters import parse_date, contains
from mediqueue.utils.validators import (
    validate_required,
    validate_phone,
    validate_email,
    validate_age,
    validate_text,
    parse_id,
)
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

appointment_bp = Blueprint('appointment', __name__, url_prefix='/api/appointments')


def _parse_time(value):
    """HH:MM 24h string, or None"""
    if value is not None and not isinstance(value, str):
        return None
    try:
        return datetime.strptime((value or '').strip(), '%H:%M').strftime('%H:%M')
    except ValueError:
        return None


@appointment_bp.route('', methods=['GET'])
@require_role('admin', 'receptionist', 'doctor')
def list_appointments():
    """
    List appointments
    Query params:
        search: patient name/phone or doctor name
        status: appointment status
        department: doctor specialization
        date: appointment date (YYYY-MM-DD)
    """
    try:
        search = request.args.get('search', '', type=str).strip()
        status = request.args.get('status')
        department = request.args.get('department', '').strip().lower()
        date_str = request.args.get('date')

        query = Appointment.query.join(Patient, Appointment.patient_id == Patient.id) \
            .outerjoin(Doctor, Appointment.doctor_id == Doctor.id)

        if search:
            pattern = contains(search)
            query = query.filter(or_(
                Patient.name.ilike(pattern),
                Patient.phone.ilike(pattern),
                Doctor.name.ilike(pattern),
            ))
        if status:
            query = query.filter(Appointment.status == status)
        if department:
            query = query.filter(Doctor.specialization == department)
        if date_str:
            appointment_date = parse_date(date_str)
            if not appointment_date:
                return jsonify({
                    'success': False,
                    'error': 'Invalid date format. Use YYYY-MM-DD'
                }), 400
            query = query.filter(Appointment.appointment_date == appointment_date)

        appointments = query.order_by(
            Appointment.appointment_date.asc(), Appointment.appointment_time.asc()
        ).all()

        return jsonify({
            'success': True,
            'data': [a.to_dict() for a in appointments],
            'total': len(appointments)
        }), 200

    except Exception as e:
        logger.error(f"Error listing appointments: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'success': False,
            'error': 'Failed to load appointments'
        }), 500


@appointment_bp.route('', methods=['POST'])
@require_role('admin', 'receptionist')
def create_appointment():
    """
    Schedule an appointment
    Body: patient_name, phone, appointment_date, appointment_time,
          optional age, email, doctor_id, duration_minutes, notes
    The patient is reused when the phone number is already registered.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'success': False, 'error': 'Request body must be a JSON object'}), 400

    for field, label in (
        ('patient_name', 'Patient name'),
        ('phone', 'Phone'),
        ('appointment_date', 'Appointment date'),
        ('appointment_time', 'Appointment time'),
    ):
        error = validate_required(data.get(field), label) or validate_text(data.get(field), label)
        if error:
            return jsonify({'success': False, 'error': error}), 400

    error = validate_phone(data['phone']) or validate_email(data.get('email'))
    if not error and data.get('age') not in (None, ''):
        error = validate_age(data['age'])
    if error:
        return jsonify({'success': False, 'error': error}), 400

    appointment_date = parse_date(data['appointment_date'])
    if not appointment_date:
        return jsonify({
            'success': False,
            'error': 'Invalid date format. Use YYYY-MM-DD'
        }), 400
    appointment_time = _parse_time(data['appointment_time'])
    if not appointment_time:
        return jsonify({
            'success': False,
            'error': 'Invalid time format. Use HH:MM'
        }), 400

    doctor_id = None
    if data.get('doctor_id') not in (None, ''):
        doctor_id = parse_id(data['doctor_id'])
        if doctor_id is None:
            return jsonify({'success': False, 'error': 'Invalid doctor_id'}), 400
    if doctor_id and not db.session.get(Doctor, doctor_id):
        return jsonify({'success': False, 'error': 'Doctor not found'}), 404

    try:
        duration = int(data.get('duration_minutes') or 30)
    except (TypeError, ValueError):
        return jsonify({'success': False, 'error': 'Duration must be a number of minutes'}), 400
    error = validate_text(data.get('notes'), 'Notes')
    if error:
        return jsonify({'success': False, 'error': error}), 400

    try:
        patient, _ = find_or_create_patient(
            data['patient_name'], data['phone'], data.get('age'), data.get('email')
        )
        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor_id,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            duration_minutes=duration,
            status='scheduled',
            notes=data.get('notes'),
        )
        db.session.add(appointment)
        db.session.commit()

        log_audit('appointment', 'create', staff_id=int(get_jwt_identity()), entity_id=appointment.id,
                  patient_uid=patient.id)
        get_channel().success(
            'Appointment scheduled',
            f'{patient.name} on {appointment_date.isoformat()} at {appointment_time}',
        )

        return jsonify({
            'success': True,
            'message': 'Appointment created successfully',
            'data': appointment.to_dict()
        }), 201

    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating appointment: {e}", exc_info=True)
        error_msg = 'Failed to create appointment' if not current_app.debug else str(e)
        return jsonify({'success': False, 'error': error_msg}), 500


@appointment_bp.route('/<int:appointment_id>/status', methods=['PUT'])
@require_role('admin', 'receptionist', 'doctor')
def update_appointment_status(appointment_id):
    """
    Move an appointment forward, cancel it, or mark a no-show
    Body: status
    """
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return jsonify({'success': False, 'error': 'Appointment not found'}), 404

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'success': False, 'error': 'Request body must be a JSON object'}), 400
    new_status = data.get('status')
    if new_status not in APPOINTMENT_STATUSES:
        return jsonify({
            'success': False,
            'error': f'Invalid status. Must be one of: {", ".join(APPOINTMENT_STATUSES)}'
        }), 400
    if not appointment.can_transition_to(new_status):
        return jsonify({
            'success': False,
            'error': f'Cannot change appointment from {appointment.status} to {new_status}'
        }), 409

    try:
        old_status = appointment.status
        appointment.status = new_status
        db.session.commit()
        log_audit('appointment', 'status', staff_id=int(get_jwt_identity()), entity_id=appointment.id,
                  patient_uid=appointment.patient_id,
                  details={'from': old_status, 'to': new_status})

        return jsonify({
            'success': True,
            'message': 'Appointment status updated',
            'data': appointment.to_dict()
        }), 200
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating appointment {appointment_id}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to update appointment'}), 500


@appointment_bp.route('/<int:appointment_id>', methods=['DELETE'])
@require_role('admin', 'receptionist')
def delete_appointment(appointment_id):
    """Delete an appointment"""
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        return jsonify({'success': False, 'error': 'Appointment not found'}), 404

    patient_uid = appointment.patient_id
    try:
        db.session.delete(appointment)
        db.session.commit()
        log_audit('appointment', 'delete', staff_id=int(get_jwt_identity()), entity_id=appointment_id,
                  patient_uid=patient_uid)
        get_channel().info('Appointment deleted')

        return jsonify({
            'success': True,
            'message': 'Appointment deleted successfully'
        }), 200
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error deleting appointment {appointment_id}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to delete appointment'}), 500
