"""
Billing API
Transactions list, pending counter payments, revenue analytics, payments, refunds and receipts.
"""
from flask import Blueprint, request, jsonify, current_app, Response
from flask_jwt_extended import get_jwt_identity
from sqlalchemy import or_
from datetime import datetime
import logging

from mediqueue.extensions import db
from mediqueue.models import PaymentTransaction, Patient, Visit
from mediqueue.services.billing_service import (
    PaymentError,
    process_payment,
    refund_transaction,
    billing_analytics,
    receipt_html,
)
from mediqueue.services.notifications import get_channel
from mediqueue.utils.decorators import require_role
from mediqueue.utils.audit import log_audit
from mediqueue.utils.filters import parse_date, day_bounds, contains
from mediqueue.utils.formatting import format_currency
from mediqueue.utils.validators import parse_id, validate_text

logger = logging.getLogger(__name__)

billing_bp = Blueprint('billing', __name__, url_prefix='/api/billing')


def _period_bounds(prefix):
    """
    [start, end) for a YYYY, YYYY-MM or YYYY-MM-DD prefix; None if it is
    none of those.
    """
    prefix = (prefix or '').strip()
    try:
        if len(prefix) == 4:
            start = datetime.strptime(prefix, '%Y')
            return start, start.replace(year=start.year + 1)
        if len(prefix) == 7:
            start = datetime.strptime(prefix, '%Y-%m')
            if start.month == 12:
                return start, start.replace(year=start.year + 1, month=1)
            return start, start.replace(month=start.month + 1)
    except ValueError:
        return None
    day = parse_date(prefix)
    return day_bounds(day) if day else None


@billing_bp.route('/transactions', methods=['GET'])
@require_role('admin', 'receptionist')
def list_transactions():
    """
    List payment transactions, newest first
    Query params: search (patient name/phone, transaction id), status, method, date (YYYY[-MM[-DD]])
    """
    try:
        search = request.args.get('search', '', type=str).strip()
        status = request.args.get('status')
        method = request.args.get('method')
        date_str = request.args.get('date')

        query = PaymentTransaction.query.join(Patient, PaymentTransaction.patient_id == Patient.id)

        if search:
            pattern = contains(search)
            query = query.filter(or_(
                Patient.name.ilike(pattern),
                Patient.phone.ilike(pattern),
                PaymentTransaction.transaction_id.ilike(pattern),
            ))
        if status:
            query = query.filter(PaymentTransaction.status == status)
        if method:
            query = query.filter(PaymentTransaction.payment_method == method)
        if date_str:
            bounds = _period_bounds(date_str)
            if not bounds:
                return jsonify({
                    'success': False,
                    'error': 'Invalid date. Use YYYY, YYYY-MM or YYYY-MM-DD'
                }), 400
            query = query.filter(
                PaymentTransaction.created_at >= bounds[0],
                PaymentTransaction.created_at < bounds[1],
            )

        transactions = query.order_by(
            PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc()
        ).all()

        return jsonify({
            'success': True,
            'data': [t.to_dict(include_visit=True) for t in transactions],
            'total': len(transactions)
        }), 200

    except Exception as e:
        logger.error(f"Error listing transactions: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'success': False,
            'error': 'Failed to load transactions'
        }), 500


@billing_bp.route('/pending-visits', methods=['GET'])
@require_role('admin', 'receptionist')
def pending_visits():
    """Visits whose patients pay at the counter"""
    try:
        visits = Visit.query.filter_by(payment_status='pay_at_clinic') \
            .order_by(Visit.visit_date.desc(), Visit.stn.asc()).all()
        return jsonify({
            'success': True,
            'data': [v.to_dict(include_patient=True) for v in visits],
            'total': len(visits)
        }), 200
    except Exception as e:
        logger.error(f"Error listing pending visits: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'success': False,
            'error': 'Failed to load pending payments'
        }), 500


@billing_bp.route('/analytics', methods=['GET'])
@require_role('admin', 'receptionist')
def analytics():
    """Revenue summary and the last 12 months of revenue"""
    try:
        transactions = PaymentTransaction.query.all()
        return jsonify({
            'success': True,
            'data': billing_analytics(transactions)
        }), 200
    except Exception as e:
        logger.error(f"Error computing billing analytics: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            'success': False,
            'error': 'Failed to load billing analytics'
        }), 500


@billing_bp.route('/payments', methods=['POST'])
@require_role('admin', 'receptionist')
def record_payment():
    """
    Record a payment for a visit and mark the visit paid
    Body: visit_id, amount, payment_method (default cash), optional notes, transaction_id
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'success': False, 'error': 'Request body must be a JSON object'}), 400
    if not data.get('visit_id'):
        return jsonify({'success': False, 'error': 'visit_id is required'}), 400
    visit_id = parse_id(data['visit_id'])
    if visit_id is None:
        return jsonify({'success': False, 'error': 'Invalid visit_id'}), 400
    if data.get('amount') in (None, ''):
        return jsonify({'success': False, 'error': 'Amount is required'}), 400
    for field in ('payment_method', 'notes', 'transaction_id'):
        error = validate_text(data.get(field), field)
        if error:
            return jsonify({'success': False, 'error': error}), 400

    visit = db.session.get(Visit, visit_id)
    if not visit:
        return jsonify({'success': False, 'error': 'Visit not found'}), 404

    try:
        transaction = process_payment(
            visit,
            data['amount'],
            payment_method=data.get('payment_method') or 'cash',
            notes=data.get('notes'),
            transaction_id=data.get('transaction_id'),
        )
    except PaymentError as e:
        db.session.rollback()
        return jsonify({'success': False, 'error': e.message}), e.status_code
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error processing payment for visit {visit_id}: {e}", exc_info=True)
        error_msg = 'Failed to process payment' if not current_app.debug else str(e)
        return jsonify({'success': False, 'error': error_msg}), 500

    log_audit('payment', 'create', staff_id=int(get_jwt_identity()), entity_id=transaction.id,
              patient_uid=transaction.patient_id,
              details={'visit_id': visit.id, 'amount': str(transaction.amount)})
    get_channel().success(
        'Payment recorded',
        f'{format_currency(transaction.amount)} received for token #{visit.stn}',
    )

    return jsonify({
        'success': True,
        'message': 'Payment processed successfully',
        'data': transaction.to_dict(include_visit=True)
    }), 201


@billing_bp.route('/transactions/<int:transaction_id>/refund', methods=['POST'])
@require_role('admin')
def refund(transaction_id):
    """Refund a completed transaction"""
    transaction = db.session.get(PaymentTransaction, transaction_id)
    if not transaction:
        return jsonify({'success': False, 'error': 'Transaction not found'}), 404

    try:
        refund_transaction(transaction)
    except PaymentError as e:
        db.session.rollback()
        return jsonify({'success': False, 'error': e.message}), e.status_code
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error refunding transaction {transaction_id}: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Failed to refund transaction'}), 500

    log_audit('payment', 'refund', staff_id=int(get_jwt_identity()), entity_id=transaction.id,
              patient_uid=transaction.patient_id)
    get_channel().warning('Payment refunded', f'{format_currency(transaction.amount)} refunded')

    return jsonify({
        'success': True,
        'message': 'Transaction refunded',
        'data': transaction.to_dict(include_visit=True)
    }), 200


@billing_bp.route('/transactions/<int:transaction_id>/receipt', methods=['GET'])
@require_role('admin', 'receptionist')
def receipt(transaction_id):
    """Printable HTML receipt"""
    transaction = db.session.get(PaymentTransaction, transaction_id)
    if not transaction:
        return jsonify({'success': False, 'error': 'Transaction not found'}), 404

    html = receipt_html(transaction, current_app.config.get('CLINIC_NAME'))
    return Response(html, mimetype='text/html')
