"""
Public booking page: book a token, watch the live queue, list departments.
"""
from flask import Blueprint, request, jsonify
from sqlalchemy.exc import IntegrityError
import logging

from mediqueue.extensions import db
from mediqueue.models import Department
from mediqueue.services.booking_service import BookingError, book_token, booking_summary
from mediqueue.services.data_access import safe_query
from mediqueue.services.notifications import get_channel
from mediqueue.services.queue_service import queue_status, department_stats
from mediqueue.utils.filters import parse_date

logger = logging.getLogger(__name__)

booking_bp = Blueprint('booking', __name__, url_prefix='/api')


@booking_bp.route('/bookings', methods=['POST'])
def create_booking():
    """
    Book a queue token
    Body: name, phone, department, optional age, email, payment_method, doctor_id
    """
    data = request.get_json(silent=True)
    if not data or not isinstance(data, dict):
        return jsonify({
            'success': False,
            'error': 'Request body must be a JSON object'
        }), 400

    try:
        patient, visit, created = book_token(data)
    except BookingError as e:
        db.session.rollback()
        return jsonify({'success': False, 'error': e.message}), e.status_code
    except IntegrityError as e:
        db.session.rollback()
        logger.warning("Booking conflict: %s", e)
        return jsonify({
            'success': False,
            'error': 'That token was just taken. Please try booking again.'
        }), 409
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating booking: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'error': 'Failed to book token. Please try again.'
        }), 500

    get_channel().success(
        'Token booked',
        f'Your token number is #{visit.stn} for {visit.department.capitalize()}',
    )

    return jsonify({
        'success': True,
        'message': 'Token booked successfully',
        'patient_created': created,
        'data': booking_summary(patient, visit)
    }), 201


@booking_bp.route('/queue/stats', methods=['GET'])
def queue_stats():
    """Per-department queue figures for today (or ?date=YYYY-MM-DD)"""
    visit_date = parse_date(request.args.get('date'))
    stats, error = safe_query(lambda: department_stats(visit_date))
    if error:
        return jsonify({
            'success': False,
            'error': 'Failed to load queue statistics'
        }), 500

    return jsonify({
        'success': True,
        'data': stats
    }), 200


@booking_bp.route('/queue/<department>', methods=['GET'])
def live_queue(department):
    """
    Live queue status, polled by the client
    Query params: stn (the caller's token), date
    """
    department = department.strip().lower()
    dept, error = safe_query(
        lambda: Department.query.filter_by(name=department, is_active=True).first()
    )
    if error:
        return jsonify({
            'success': False,
            'error': 'Failed to load queue status'
        }), 500
    if not dept:
        return jsonify({
            'success': False,
            'error': 'Department not found'
        }), 404

    user_stn = request.args.get('stn', type=int)
    if user_stn is not None and user_stn < 1:
        return jsonify({
            'success': False,
            'error': 'Token number must be a positive integer'
        }), 400

    visit_date = parse_date(request.args.get('date'))
    status, error = safe_query(lambda: queue_status(department, visit_date, user_stn=user_stn))
    if error:
        return jsonify({
            'success': False,
            'error': 'Failed to load queue status'
        }), 500

    status['display_name'] = dept.display_name
    status['average_wait_time'] = dept.average_consultation_time
    return jsonify({
        'success': True,
        'data': status
    }), 200


@booking_bp.route('/departments', methods=['GET'])
def list_departments():
    """Active departments offered on the booking form"""
    departments, error = safe_query(
        lambda: Department.query.filter_by(is_active=True).order_by(Department.display_name).all()
    )
    if error:
        return jsonify({
            'success': False,
            'error': 'Failed to load departments'
        }), 500

    return jsonify({
        'success': True,
        'data': [d.to_dict() for d in departments]
    }), 200
