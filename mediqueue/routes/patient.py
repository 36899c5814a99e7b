from flask import Blueprint, request, jsonify, current_app, Response
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
import logging

from mediqueue.extensions import db
from mediqueue.models import Patient, MedicalHistory, Visit
from mediqueue.services.history_service import history_summary, patient_report_html, record_html
from mediqueue.services.queue_service import generate_uid
from mediqueue.utils.decorators import require_role
from mediqueue.utils.audit import log_audit, audit_trail
from mediqueue.utils.filters import contains
from mediqueue.utils.validators import (
    validate_required,
    validate_phone,
    validate_email,
    validate_age,
    validate_text,
    normalize_phone,
    sanitize_input,
)

logger = logging.getLogger(__name__)

patient_bp = Blueprint('patient', __name__, url_prefix='/api/patients')

STAFF_ROLES = ('admin', 'receptionist', 'doctor')
BLOOD_GROUPS = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']


def _find_patient(uid):
    return db.session.get(Patient, (uid or '').strip().upper())


def _history_rows(patient):
    records = patient.medical_history.order_by(
        MedicalHistory.created_at.desc(), MedicalHistory.id.desc()
    ).all()
    visits = patient.visits.order_by(Visit.visit_date.desc(), Visit.id.desc()).all()
    return records, visits


def _apply_patient_fields(patient, data):
    """Copy editable fields; returns an error message or None."""
    if 'name' in data:
        error = validate_required(data['name'], 'Name') or validate_text(data['name'], 'Name')
        if error:
            return error
        patient.name = sanitize_input(data['name'])
    if 'phone' in data:
        error = validate_phone(data['phone'])
        if error:
            return error
        patient.phone = normalize_phone(data['phone'])
    if 'email' in data:
        error = validate_email(data['email'])
        if error:
            return error
        patient.email = data['email'] or None
    if 'age' in data:
        if data['age'] in (None, ''):
            patient.age = None
        else:
            error = validate_age(data['age'])
            if error:
                return error
            patient.age = int(data['age'])
    if 'blood_group' in data:
        if data['blood_group'] and (not isinstance(data['blood_group'], str)
                                   or data['blood_group'] not in BLOOD_GROUPS):
            return f'Invalid blood group. Must be one of: {", ".join(BLOOD_GROUPS)}'
        patient.blood_group = data['blood_group'] or None
    for field in ('address', 'emergency_contact'):
        if field in data:
            setattr(patient, field, sanitize_input(data[field]) or None)
    for field in ('allergies', 'medical_conditions'):
        if field in data:
            values = data[field] or []
            if not isinstance(values, list):
                return f'{field.replace("_", " ").capitalize()} must be a list'
            setattr(patient, field, values)
    return None


@patient_bp.route('', methods=['GET'])
@require_role(*STAFF_ROLES)
def list_patients():
    """
    List patients with pagination and search
    Query params: page, limit, search (name, phone or UID)
    """
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', 20, type=int)
    search = request.args.get('search', '', type=str).strip()

    if page < 1:
        page = 1
    if limit < 1 or limit > 100:
        limit = 20

    try:
        query = Patient.query
        if search:
            pattern = contains(search)
            query = query.filter(or_(
                Patient.name.ilike(pattern),
                Patient.phone.ilike(pattern),
                Patient.id.ilike(pattern),
            ))

        patients = query.order_by(Patient.created_at.desc()).paginate(
            page=page,
            per_page=limit,
            error_out=False
        )
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error listing patients: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to load patients'}), 500

    return jsonify({
        'success': True,
        'data': [p.to_dict() for p in patients.items],
        'pagination': {
            'page': page,
            'limit': limit,
            'total': patients.total,
            'pages': patients.pages,
            'has_next': patients.has_next,
            'has_prev': patients.has_prev
        }
    }), 200


@patient_bp.route('', methods=['POST'])
@require_role('admin', 'receptionist')
def create_patient():
    """Register a patient. Required: name, phone"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'success': False, 'error': 'Request body must be a JSON object'}), 400
    for field, label in (('name', 'Name'), ('phone', 'Phone')):
        error = validate_required(data.get(field), label) or validate_text(data.get(field), label)
        if error:
            return jsonify({'success': False, 'error': error}), 400

    phone = normalize_phone(data['phone'])
    existing = Patient.query.filter_by(phone=phone).first()
    if existing:
        return jsonify({
            'success': False,
            'error': 'A patient with this phone number already exists',
            'data': existing.to_dict()
        }), 409

    try:
        patient = Patient(id=generate_uid())
        error = _apply_patient_fields(patient, data)
        if error:
            return jsonify({'success': False, 'error': error}), 400

        db.session.add(patient)
        db.session.commit()
        log_audit('patient', 'create', staff_id=int(get_jwt_identity()), entity_id=patient.id,
                  patient_uid=patient.id)

        return jsonify({
            'success': True,
            'message': 'Patient created successfully',
            'data': patient.to_dict()
        }), 201
    except IntegrityError:
        db.session.rollback()
        return jsonify({'success': False, 'error': 'A patient with this phone number already exists'}), 409
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating patient: {e}", exc_info=True)
        error_msg = 'Failed to create patient' if not current_app.debug else str(e)
        return jsonify({'success': False, 'error': error_msg}), 500


@patient_bp.route('/<uid>', methods=['GET'])
@require_role(*STAFF_ROLES)
def get_patient(uid):
    """Get single patient by UID"""
    patient = _find_patient(uid)
    if not patient:
        return jsonify({'success': False, 'error': 'Patient not found'}), 404

    return jsonify({
        'success': True,
        'data': patient.to_dict()
    }), 200


@patient_bp.route('/<uid>', methods=['PUT'])
@require_role(*STAFF_ROLES)
def update_patient(uid):
    """Update patient details; the UID never changes"""
    patient = _find_patient(uid)
    if not patient:
        return jsonify({'success': False, 'error': 'Patient not found'}), 404

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'success': False, 'error': 'Request body must be a JSON object'}), 400
    data.pop('uid', None)
    data.pop('id', None)

    try:
        error = _apply_patient_fields(patient, data)
        if error:
            db.session.rollback()
            return jsonify({'success': False, 'error': error}), 400

        db.session.commit()
        log_audit('patient', 'update', staff_id=int(get_jwt_identity()), entity_id=patient.id,
                  patient_uid=patient.id,
                  details={'fields': sorted(data.keys())})

        return jsonify({
            'success': True,
            'message': 'Patient updated successfully',
            'data': patient.to_dict()
        }), 200
    except IntegrityError:
        db.session.rollback()
        return jsonify({'success': False, 'error': 'A patient with this phone number already exists'}), 409
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating patient {uid}: {e}", exc_info=True)
        error_msg = 'Failed to update patient' if not current_app.debug else str(e)
        return jsonify({'success': False, 'error': error_msg}), 500


@patient_bp.route('/<uid>/history', methods=['GET'])
@require_role(*STAFF_ROLES)
def patient_history(uid):
    """Patient, medical history, visits with their transactions, and summary counts"""
    patient = _find_patient(uid)
    if not patient:
        return jsonify({'success': False, 'error': 'Patient not found'}), 404

    try:
        records, visits = _history_rows(patient)

        visit_rows = []
        for visit in visits:
            row = visit.to_dict()
            row['transactions'] = [t.to_dict() for t in visit.transactions]
            visit_rows.append(row)

        return jsonify({
            'success': True,
            'data': {
                'patient': patient.to_dict(),
                'medical_history': [r.to_dict() for r in records],
                'visits': visit_rows,
                'summary': history_summary(visits, records),
            }
        }), 200
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error loading history for {uid}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to load patient history'}), 500


@patient_bp.route('/<uid>/report', methods=['GET'])
@require_role(*STAFF_ROLES)
def patient_report(uid):
    """Printable medical-history report (HTML)"""
    patient = _find_patient(uid)
    if not patient:
        return jsonify({'success': False, 'error': 'Patient not found'}), 404

    try:
        records, visits = _history_rows(patient)
        html = patient_report_html(patient, visits, records, current_app.config.get('CLINIC_NAME'))
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error building report for {uid}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to generate report'}), 500

    return Response(html, status=200, mimetype='text/html')


@patient_bp.route('/<uid>/records/<int:record_id>/print', methods=['GET'])
@require_role(*STAFF_ROLES)
def print_record(uid, record_id):
    """Printable page for one of the patient's medical records"""
    patient = _find_patient(uid)
    record = db.session.get(MedicalHistory, record_id)
    if not patient or not record or record.patient_id != patient.id:
        return jsonify({'success': False, 'error': 'Medical record not found'}), 404

    return Response(record_html(record), status=200, mimetype='text/html')


@patient_bp.route('/<uid>/activity', methods=['GET'])
@require_role('admin')
def patient_activity(uid):
    """Staff actions that touched this patient, newest first. Query param: limit (max 500)"""
    patient = _find_patient(uid)
    if not patient:
        return jsonify({'success': False, 'error': 'Patient not found'}), 404

    limit = min(max(request.args.get('limit', 100, type=int), 1), 500)
    return jsonify({
        'success': True,
        'data': [entry.to_dict() for entry in audit_trail(patient_uid=patient.id, limit=limit)]
    }), 200
