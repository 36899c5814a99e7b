"""
Queue desk API
Staff view of today's visits: filter, update status/payment/doctor, call the next token.
"""
from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import or_
from mediqueue.extensions import db
from mediqueue.models import Visit, Patient, Doctor
from mediqueue.models.visit import VISIT_STATUSES, PAYMENT_STATUSES
from mediqueue.services.notifications import get_channel
from mediqueue.services.queue_service import call_next
from mediqueue.utils.decorators import require_role
from mediqueue.utils.audit import log_audit
from mediqueue.utils.filters import parse_date, contains
from mediqueue.utils.validators import parse_id
import logging

logger = logging.getLogger(__name__)

queue_bp = Blueprint('queue', __name__, url_prefix='/api')


@queue_bp.route('/visits', methods=['GET'])
@require_role('admin', 'receptionist', 'doctor')
def list_visits():
    """
    List visits with pagination and filters

    Query params:
        department: exact department name
        status: visit status
        payment_status: payment status
        date: visit date (YYYY-MM-DD)
        search: substring of patient name, phone or UID
        page, limit
    """
    try:
        page = request.args.get('page', 1, type=int)
        limit = request.args.get('limit', 50, type=int)
        department = request.args.get('department', '').strip().lower()
        status = request.args.get('status')
        payment_status = request.args.get('payment_status')
        date_str = request.args.get('date')
        search = request.args.get('search', '', type=str).strip()

        if page < 1:
            page = 1
        if limit < 1 or limit > 200:
            limit = 50

        query = Visit.query.join(Patient, Visit.patient_id == Patient.id)

        if department:
            query = query.filter(Visit.department == department)
        if status:
            query = query.filter(Visit.status == status)
        if payment_status:
            query = query.filter(Visit.payment_status == payment_status)
        if date_str:
            visit_date = parse_date(date_str)
            if not visit_date:
                return jsonify({
                    'success': False,
                    'error': 'Invalid date format. Use YYYY-MM-DD'
                }), 400
            query = query.filter(Visit.visit_date == visit_date)
        if search:
            pattern = contains(search)
            query = query.filter(or_(
                Patient.name.ilike(pattern),
                Patient.phone.ilike(pattern),
                Patient.id.ilike(pattern),
            ))

        query = query.order_by(Visit.visit_date.desc(), Visit.department, Visit.stn)
        pagination = query.paginate(page=page, per_page=limit, error_out=False)

        return jsonify({
            'success': True,
            'data': [visit.to_dict(include_patient=True) for visit in pagination.items],
            'pagination': {
                'page': pagination.page,
                'limit': limit,
                'total': pagination.total,
                'pages': pagination.pages
            }
        }), 200

    except Exception as e:
        logger.error(f"Error listing visits: {e}", exc_info=True)
        db.session.rollback()
        error_msg = 'Failed to list visits' if not current_app.debug else str(e)
        return jsonify({
            'success': False,
            'error': error_msg
        }), 500


@queue_bp.route('/visits/<int:visit_id>', methods=['GET'])
@require_role('admin', 'receptionist', 'doctor')
def get_visit(visit_id):
    """Get visit details by ID"""
    visit = db.session.get(Visit, visit_id)
    if not visit:
        return jsonify({
            'success': False,
            'error': 'Visit not found'
        }), 404

    data = visit.to_dict(include_patient=True)
    data['transactions'] = [t.to_dict() for t in visit.transactions]
    return jsonify({
        'success': True,
        'data': data
    }), 200


@queue_bp.route('/visits/<int:visit_id>', methods=['PUT'])
@require_role('admin', 'receptionist', 'doctor')
def update_visit(visit_id):
    """
    Update visit status, payment status or assigned doctor
    Body: status, payment_status, doctor_id (all optional)
    """
    try:
        user_id = int(get_jwt_identity())
        visit = db.session.get(Visit, visit_id)
        if not visit:
            return jsonify({
                'success': False,
                'error': 'Visit not found'
            }), 404

        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            return jsonify({
                'success': False,
                'error': 'Request body must be a JSON object'
            }), 400
        changes = {}

        if 'status' in data:
            new_status = data['status']
            if new_status not in VISIT_STATUSES:
                return jsonify({
                    'success': False,
                    'error': f'Invalid status. Must be one of: {", ".join(VISIT_STATUSES)}'
                }), 400
            if not visit.can_transition_to(new_status):
                return jsonify({
                    'success': False,
                    'error': f'Cannot change visit from {visit.status} to {new_status}'
                }), 409
            changes['status'] = new_status

        if 'payment_status' in data:
            new_payment_status = data['payment_status']
            if new_payment_status not in PAYMENT_STATUSES:
                return jsonify({
                    'success': False,
                    'error': f'Invalid payment status. Must be one of: {", ".join(PAYMENT_STATUSES)}'
                }), 400
            # Paid only via a completed transaction
            if new_payment_status == 'paid' and not visit.has_completed_payment():
                return jsonify({
                    'success': False,
                    'error': 'Record the payment through billing before marking the visit paid'
                }), 409
            changes['payment_status'] = new_payment_status

        if 'doctor_id' in data:
            doctor_id = data['doctor_id']
            if doctor_id is not None:
                doctor_id = parse_id(doctor_id)
                if doctor_id is None:
                    return jsonify({
                        'success': False,
                        'error': 'Invalid doctor_id'
                    }), 400
            if doctor_id is not None and not db.session.get(Doctor, doctor_id):
                return jsonify({
                    'success': False,
                    'error': 'Doctor not found'
                }), 404
            changes['doctor_id'] = doctor_id

        for field, value in changes.items():
            setattr(visit, field, value)
        db.session.commit()
        log_audit('visit', 'update', staff_id=user_id, entity_id=visit.id,
                  patient_uid=visit.patient_id, details=changes)

        if 'status' in changes:
            get_channel().info(
                'Visit updated',
                f'Token #{visit.stn} ({visit.department}) is now {visit.status.replace("_", " ")}',
            )

        return jsonify({
            'success': True,
            'message': 'Visit updated successfully',
            'data': visit.to_dict(include_patient=True)
        }), 200

    except Exception as e:
        logger.error(f"Error updating visit {visit_id}: {e}", exc_info=True)
        db.session.rollback()
        error_msg = 'Failed to update visit' if not current_app.debug else str(e)
        return jsonify({
            'success': False,
            'error': error_msg
        }), 500


@queue_bp.route('/queue/<department>/call-next', methods=['POST'])
@require_role('admin', 'receptionist', 'doctor')
def call_next_token(department):
    """Complete the token in service and bring the lowest waiting token in"""
    try:
        user_id = int(get_jwt_identity())
        department = department.strip().lower()
        completed, upcoming = call_next(department)
        log_audit('queue', 'call_next', staff_id=user_id, entity_id=department, details={
            'completed': [v.stn for v in completed],
            'now_serving': upcoming.stn if upcoming else None,
        })

        if upcoming:
            get_channel().info('Now serving', f'Token #{upcoming.stn} in {department.capitalize()}')
        else:
            get_channel().warning('Queue empty', f'No tokens waiting in {department.capitalize()}')

        return jsonify({
            'success': True,
            'data': {
                'completed': [v.to_dict() for v in completed],
                'now_serving': upcoming.to_dict(include_patient=True) if upcoming else None,
            }
        }), 200

    except Exception as e:
        logger.error(f"Error calling next token for {department}: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'success': False,
            'error': 'Failed to call next token'
        }), 500
