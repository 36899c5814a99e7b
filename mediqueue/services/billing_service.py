"""
Billing: payment processing, refunds, revenue analytics and receipts.
"""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation

from markupsafe import escape

from mediqueue.extensions import db
from mediqueue.models import PaymentTransaction, Department
from mediqueue.models.payment import PAYMENT_METHODS
from mediqueue.utils.formatting import format_currency, format_date, format_time

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def parse_amount(raw):
    try:
        amount = Decimal(str(raw))
    except (InvalidOperation, TypeError, ValueError):
        raise PaymentError('Amount must be a number')
    if not amount.is_finite() or amount <= 0:
        raise PaymentError('Amount must be greater than zero')
    return amount.quantize(Decimal('0.01'))


def process_payment(visit, amount, payment_method='cash', notes=None, transaction_id=None):
    """
    Record a completed payment for a visit and mark the visit paid.

    The transaction is committed before the visit is updated, so a visit is
    never 'paid' without a completed transaction behind it.
    """
    if payment_method not in PAYMENT_METHODS:
        raise PaymentError(f'Invalid payment method. Must be one of: {", ".join(PAYMENT_METHODS)}')
    if visit.payment_status == 'paid':
        raise PaymentError('Visit is already paid', 409)

    amount = parse_amount(amount)

    transaction = PaymentTransaction(
        visit_id=visit.id,
        patient_id=visit.patient_id,
        amount=amount,
        payment_method=payment_method,
        status='completed',
        transaction_id=transaction_id,
        notes=notes,
        processed_at=datetime.utcnow(),
    )
    db.session.add(transaction)
    db.session.commit()

    visit.payment_status = 'paid'
    db.session.commit()

    logger.info("Payment %s of %s recorded for visit %s", transaction.id, amount, visit.id)
    return transaction


def refund_transaction(transaction):
    if transaction.status != 'completed':
        raise PaymentError('Only completed transactions can be refunded', 409)

    transaction.status = 'refunded'
    db.session.commit()

    visit = transaction.visit
    if visit is not None and not visit.has_completed_payment():
        visit.payment_status = 'refunded'
        db.session.commit()

    return transaction


def _shift_month(year, month, back):
    index = year * 12 + (month - 1) - back
    return index // 12, index % 12 + 1


def billing_analytics(transactions, today=None):
    """
    Revenue figures over the given transactions: totals count completed
    payments only, pending_amount sums pending ones, monthly_revenue covers
    the last 12 months oldest first.
    """
    today = today or datetime.utcnow().date()
    completed = [t for t in transactions if t.status == 'completed']

    def total(rows):
        return float(sum((Decimal(t.amount) for t in rows), Decimal('0')))

    monthly = []
    for back in range(11, -1, -1):
        year, month = _shift_month(today.year, today.month, back)
        monthly.append({
            'month': f'{year:04d}-{month:02d}',
            'revenue': total(
                t for t in completed
                if t.created_at.year == year and t.created_at.month == month
            ),
        })

    return {
        'total_revenue': total(completed),
        'today_revenue': total(t for t in completed if t.created_at.date() == today),
        'pending_amount': total(t for t in transactions if t.status == 'pending'),
        'completed_transactions': len(completed),
        'monthly_revenue': monthly,
    }


def receipt_html(transaction, clinic_name):
    """Printable receipt for one transaction."""
    visit = transaction.visit
    patient = visit.patient if visit else None
    doctor = visit.doctor if visit else None
    department = Department.query.filter_by(name=visit.department).first() if visit else None
    amount = format_currency(transaction.amount)
    reference = transaction.transaction_id or f'TXN-{transaction.id:08d}'

    def e(value):
        return escape(value if value not in (None, '') else 'N/A')

    token_line = f'<p><strong>Token Number:</strong> #{visit.stn}</p>' if visit else ''
    doctor_line = f'<p><strong>Doctor:</strong> {e(doctor.name)}</p>' if doctor else ''

    return f"""<html>
  <head>
    <title>Receipt - {e(patient.name if patient else 'Patient')}</title>
    <style>
      @media print {{ body {{ margin: 0; }} .no-print {{ display: none; }} }}
      body {{ font-family: Arial, sans-serif; }}
      .receipt {{ max-width: 600px; margin: 0 auto; padding: 20px; border: 1px solid #ddd; }}
      .header {{ text-align: center; border-bottom: 2px solid #333; padding-bottom: 20px; margin-bottom: 20px; }}
      h3 {{ color: #333; border-bottom: 1px solid #ccc; padding-bottom: 5px; }}
      table {{ width: 100%; border-collapse: collapse; }}
      td {{ padding: 8px; border: 1px solid #ddd; }}
      .amount {{ text-align: right; }}
    </style>
  </head>
  <body>
    <div class="receipt">
      <div class="header">
        <h1 style="color: #2563eb; margin: 0;">{e(clinic_name)}</h1>
        <p>Payment Receipt</p>
        <p>Receipt #: {transaction.id:08d}</p>
        <p>Date: {format_date(transaction.created_at)}</p>
      </div>
      <h3>Patient Information</h3>
      <p><strong>Name:</strong> {e(patient.name if patient else None)}</p>
      <p><strong>Phone:</strong> {e(patient.phone if patient else None)}</p>
      <p><strong>Patient ID:</strong> {e(patient.id if patient else None)}</p>
      {token_line}
      <h3>Service Details</h3>
      <p><strong>Department:</strong> {e(department.display_name if department else (visit.department if visit else None))}</p>
      {doctor_line}
      <p><strong>Visit Date:</strong> {format_date(visit.visit_date) if visit else 'N/A'}</p>
      <h3>Payment Details</h3>
      <table>
        <tr><td><strong>Description</strong></td><td class="amount"><strong>Amount</strong></td></tr>
        <tr><td>Consultation Fee</td><td class="amount">{amount}</td></tr>
        <tr style="background-color: #f9f9f9;"><td><strong>Total Amount</strong></td><td class="amount"><strong>{amount}</strong></td></tr>
      </table>
      <p><strong>Payment Method:</strong> {e(transaction.payment_method.upper())}</p>
      <p><strong>Transaction ID:</strong> {e(reference)}</p>
      <p><strong>Status:</strong> {e(transaction.status.upper())}</p>
      <p><strong>Processed At:</strong> {format_time(transaction.processed_at) if transaction.processed_at else 'N/A'}</p>
      <div style="text-align: center; border-top: 1px solid #ccc; padding-top: 20px; margin-top: 20px; font-size: 12px; color: #666;">
        <p>Thank you for choosing {e(clinic_name)}</p>
        <p>This is a computer-generated receipt</p>
      </div>
    </div>
    <div class="no-print" style="text-align: center; margin-top: 20px;">
      <button onclick="window.print()">Print</button>
      <button onclick="window.close()">Close</button>
    </div>
  </body>
</html>"""
