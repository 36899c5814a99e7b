from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from mediqueue.extensions import db
from mediqueue.models import PaymentTransaction, Visit
from mediqueue.services.billing_service import (
    PaymentError,
    parse_amount,
    process_payment,
    billing_analytics,
)


@pytest.fixture
def visit(make_patient, make_visit):
    patient = make_patient(name='Asha', phone='9999999999')
    return make_visit(patient=patient, payment_status='pay_at_clinic')


def test_paying_a_counter_visit(client, visit, receptionist_headers):
    response = client.post('/api/billing/payments', headers=receptionist_headers, json={
        'visit_id': visit.id,
        'amount': 500,
        'payment_method': 'cash',
    })
    assert response.status_code == 201
    data = response.get_json()['data']
    assert data['amount'] == 500.0
    assert data['status'] == 'completed'
    assert data['visit']['payment_status'] == 'paid'

    transactions = PaymentTransaction.query.all()
    assert len(transactions) == 1
    assert transactions[0].amount == Decimal('500.00')
    assert transactions[0].patient_id == visit.patient_id
    assert db.session.get(Visit, visit.id).payment_status == 'paid'


def test_paying_twice_is_refused(client, visit, receptionist_headers):
    payload = {'visit_id': visit.id, 'amount': 500}
    assert client.post('/api/billing/payments', headers=receptionist_headers, json=payload).status_code == 201
    response = client.post('/api/billing/payments', headers=receptionist_headers, json=payload)
    assert response.status_code == 409
    assert PaymentTransaction.query.count() == 1


@pytest.mark.parametrize('payload,status', [
    ({'amount': 0}, 400),
    ({'amount': -10}, 400),
    ({'amount': 'lots'}, 400),
    ({'amount': 500, 'payment_method': 'barter'}, 400),
    ({}, 400),
])
def test_payment_validation(client, visit, receptionist_headers, payload, status):
    response = client.post('/api/billing/payments', headers=receptionist_headers,
                           json={'visit_id': visit.id, **payload})
    assert response.status_code == status
    assert PaymentTransaction.query.count() == 0
    assert db.session.get(Visit, visit.id).payment_status == 'pay_at_clinic'


def test_payment_for_unknown_visit(client, receptionist_headers):
    response = client.post('/api/billing/payments', headers=receptionist_headers,
                           json={'visit_id': 999, 'amount': 500})
    assert response.status_code == 404


@pytest.mark.parametrize('payload', [
    {'visit_id': 'abc', 'amount': 500},
    {'visit_id': [1], 'amount': 500},
    {'visit_id': True, 'amount': 500},
    {'visit_id': 1, 'amount': 500, 'notes': 5},
    [{'visit_id': 1, 'amount': 500}],
])
def test_payment_rejects_malformed_body(client, visit, receptionist_headers, payload):
    response = client.post('/api/billing/payments', headers=receptionist_headers, json=payload)
    assert response.status_code == 400
    assert PaymentTransaction.query.count() == 0


def test_billing_requires_staff_role(client, visit, doctor_headers):
    assert client.post('/api/billing/payments', json={'visit_id': visit.id, 'amount': 500}).status_code == 401
    response = client.post('/api/billing/payments', headers=doctor_headers,
                           json={'visit_id': visit.id, 'amount': 500})
    assert response.status_code == 403


def test_visit_cannot_be_marked_paid_without_transaction(client, visit, receptionist_headers):
    response = client.put(f'/api/visits/{visit.id}', headers=receptionist_headers,
                          json={'payment_status': 'paid'})
    assert response.status_code == 409
    assert db.session.get(Visit, visit.id).payment_status == 'pay_at_clinic'


def test_parse_amount():
    assert parse_amount('499.999') == Decimal('500.00')
    with pytest.raises(PaymentError):
        parse_amount('nan')
    with pytest.raises(PaymentError):
        parse_amount(None)


def test_pending_visits(client, visit, make_visit, receptionist_headers):
    make_visit(payment_status='pending')
    response = client.get('/api/billing/pending-visits', headers=receptionist_headers)
    data = response.get_json()['data']
    assert [v['id'] for v in data] == [visit.id]
    assert data[0]['patient']['name'] == 'Asha'


def test_transaction_filters(client, visit, make_patient, make_visit, receptionist_headers):
    process_payment(visit, 500, payment_method='cash')
    other = make_visit(patient=make_patient(name='Ravi', phone='9888888888'))
    process_payment(other, 800, payment_method='upi', transaction_id='UPI-4455')

    def ids(query):
        response = client.get(f'/api/billing/transactions{query}', headers=receptionist_headers)
        assert response.status_code == 200
        return sorted(t['amount'] for t in response.get_json()['data'])

    year = datetime.utcnow().strftime('%Y')
    today = datetime.utcnow().strftime('%Y-%m-%d')

    assert ids('') == [500.0, 800.0]
    assert ids('?search=asha') == [500.0]
    assert ids('?search=4455') == [800.0]
    assert ids('?method=upi') == [800.0]
    assert ids('?status=refunded') == []
    assert ids(f'?date={year}') == [500.0, 800.0]
    assert ids(f'?date={today}&method=cash') == [500.0]
    assert ids('?date=1999-01') == []

    response = client.get('/api/billing/transactions?date=soon', headers=receptionist_headers)
    assert response.status_code == 400


def test_refund(client, visit, admin_headers, receptionist_headers):
    transaction = process_payment(visit, 500)

    response = client.post(f'/api/billing/transactions/{transaction.id}/refund', headers=receptionist_headers)
    assert response.status_code == 403

    response = client.post(f'/api/billing/transactions/{transaction.id}/refund', headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json()['data']['status'] == 'refunded'
    assert db.session.get(Visit, visit.id).payment_status == 'refunded'

    response = client.post(f'/api/billing/transactions/{transaction.id}/refund', headers=admin_headers)
    assert response.status_code == 409


def test_receipt_html(client, make_patient, make_visit, receptionist_headers):
    patient = make_patient(name='Asha <b>', phone='9777777777')
    transaction = process_payment(make_visit(patient=patient), 1500, payment_method='card')

    response = client.get(f'/api/billing/transactions/{transaction.id}/receipt', headers=receptionist_headers)
    assert response.status_code == 200
    assert response.mimetype == 'text/html'
    html = response.get_data(as_text=True)
    assert '₹1,500' in html
    assert 'Asha &lt;b&gt;' in html
    assert 'General Medicine' in html
    assert 'CARD' in html


def test_billing_analytics():
    today = date(2026, 3, 5)

    def txn(amount, status, when):
        return SimpleNamespace(amount=Decimal(amount), status=status, created_at=when)

    transactions = [
        txn('500', 'completed', datetime(2026, 3, 5, 9, 0)),
        txn('800', 'completed', datetime(2026, 3, 1, 9, 0)),
        txn('700', 'completed', datetime(2025, 4, 10, 9, 0)),
        txn('300', 'pending', datetime(2026, 3, 5, 10, 0)),
        txn('900', 'refunded', datetime(2026, 3, 5, 11, 0)),
        txn('100', 'completed', datetime(2025, 3, 31, 9, 0)),
    ]

    result = billing_analytics(transactions, today=today)

    assert result['total_revenue'] == 2100.0
    assert result['today_revenue'] == 500.0
    assert result['pending_amount'] == 300.0
    assert result['completed_transactions'] == 4
    months = result['monthly_revenue']
    assert len(months) == 12
    assert months[0] == {'month': '2025-04', 'revenue': 700.0}
    assert months[-1] == {'month': '2026-03', 'revenue': 1300.0}


def test_analytics_endpoint(client, visit, receptionist_headers):
    process_payment(visit, 500)
    response = client.get('/api/billing/analytics', headers=receptionist_headers)
    data = response.get_json()['data']
    assert data['total_revenue'] == 500.0
    assert data['completed_transactions'] == 1
