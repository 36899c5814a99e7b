from datetime import datetime

import pytest

from mediqueue.extensions import db
from mediqueue.models import MedicalHistory, Visit
from mediqueue.services.prescription_service import (
    NO_PRESCRIPTIONS,
    PATIENT_NOT_FOUND,
    search_prescriptions,
    record_consultation,
    prescription_text,
    export_filename,
)

UID = 'CLN1-ABC123XYZ'


@pytest.fixture
def patient(make_patient):
    return make_patient(name='Asha Rao', uid=UID, age=34)


def test_search_with_no_history_is_not_an_error(client, patient):
    response = client.get('/api/prescriptions/search?uid=cln1-abc123xyz')
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True
    assert body['data']['prescriptions'] == []
    assert body['data']['patient']['uid'] == UID
    assert body['message'] == NO_PRESCRIPTIONS


def test_search_unknown_patient(client):
    response = client.get('/api/prescriptions/search?uid=CLN1-NOPE')
    assert response.status_code == 404
    assert response.get_json()['error'] == PATIENT_NOT_FOUND


def test_search_requires_uid(client):
    response = client.get('/api/prescriptions/search?uid=%20')
    assert response.status_code == 400


def test_search_service_when_not_configured(app, patient):
    app.config['DATA_SERVICE_CONFIGURED'] = False
    result = search_prescriptions(UID)
    assert result['found'] is False
    assert result['error'] is not None


def test_doctor_records_prescription(client, patient, doctor, doctor_headers, make_visit):
    visit = make_visit(patient=patient, status='in_service')

    response = client.post('/api/prescriptions', headers=doctor_headers, json={
        'patient_uid': UID.lower(),
        'visit_id': visit.id,
        'diagnosis': 'Viral fever',
        'prescription': 'Paracetamol 500mg twice daily for 3 days',
        'complete_visit': True,
    })
    assert response.status_code == 201
    record = response.get_json()['data']
    assert record['doctor_id'] == doctor.id
    assert record['visit_id'] == visit.id
    assert db.session.get(Visit, visit.id).status == 'completed'

    response = client.get(f'/api/prescriptions/search?uid={UID}')
    body = response.get_json()
    assert len(body['data']['prescriptions']) == 1
    assert body['message'] == 'Found 1 prescription(s) for Asha Rao'


def test_complete_visit_respects_visit_transitions(app, patient, doctor, make_visit):
    visit = make_visit(patient=patient, status='waiting')
    record_consultation(patient, doctor=doctor, visit=visit, diagnosis='Checkup', complete_visit=True)
    assert visit.status == 'waiting'


def test_prescription_requires_content(client, patient, doctor_headers):
    response = client.post('/api/prescriptions', headers=doctor_headers, json={'patient_uid': UID})
    assert response.status_code == 400


def test_prescription_visit_must_belong_to_patient(client, patient, doctor_headers, make_visit):
    other_visit = make_visit()
    response = client.post('/api/prescriptions', headers=doctor_headers, json={
        'patient_uid': UID, 'visit_id': other_visit.id, 'diagnosis': 'Cold',
    })
    assert response.status_code == 404


@pytest.mark.parametrize('body', [
    {'patient_uid': 12, 'diagnosis': 'Cold'},
    {'patient_uid': UID, 'diagnosis': ['Cold']},
    {'patient_uid': UID, 'diagnosis': 'Cold', 'notes': {'a': 1}},
    {'patient_uid': UID, 'diagnosis': 'Cold', 'visit_id': 'abc'},
    {'diagnosis': 'Cold'},
    [{'patient_uid': UID, 'diagnosis': 'Cold'}],
])
def test_prescription_rejects_malformed_body(client, patient, doctor_headers, body):
    response = client.post('/api/prescriptions', headers=doctor_headers, json=body)
    assert response.status_code == 400
    assert response.get_json()['success'] is False
    assert MedicalHistory.query.count() == 0


def test_only_doctors_record_prescriptions(client, patient, receptionist_headers):
    response = client.post('/api/prescriptions', headers=receptionist_headers, json={
        'patient_uid': UID, 'diagnosis': 'Cold',
    })
    assert response.status_code == 403

    response = client.post('/api/prescriptions', json={'patient_uid': UID, 'diagnosis': 'Cold'})
    assert response.status_code == 401


def test_download_history_text(client, patient, doctor):
    record_consultation(patient, doctor=doctor, diagnosis='Migraine', prescription='Rest')
    record_consultation(patient, doctor=doctor, diagnosis='Follow-up')

    response = client.get(f'/api/prescriptions/{UID}/download')
    assert response.status_code == 200
    assert response.mimetype == 'text/plain'
    assert 'attachment; filename="Medical_History_Asha_Rao_' in response.headers['Content-Disposition']
    text = response.get_data(as_text=True)
    assert 'COMPLETE MEDICAL HISTORY' in text
    assert 'TOTAL PRESCRIPTIONS: 2' in text
    assert 'PRESCRIPTION #2' in text


def test_download_history_without_records(client, patient):
    response = client.get(f'/api/prescriptions/{UID}/download')
    assert response.status_code == 404
    assert response.get_json()['error'] == NO_PRESCRIPTIONS


def test_download_single_record_requires_owner_uid(client, patient, doctor, make_patient):
    record = record_consultation(patient, doctor=doctor, diagnosis='Migraine')
    other = make_patient(name='Other')

    response = client.get(f'/api/prescriptions/record/{record.id}/download?uid={other.id}')
    assert response.status_code == 404
    response = client.get(f'/api/prescriptions/record/{record.id}/download')
    assert response.status_code == 404

    response = client.get(f'/api/prescriptions/record/{record.id}/download?uid={UID}')
    assert response.status_code == 200
    assert 'Migraine' in response.get_data(as_text=True)


def test_record_pdf(client, patient, doctor):
    record = record_consultation(patient, doctor=doctor, diagnosis='Migraine', prescription='Rest <daily>')

    response = client.get(f'/api/prescriptions/record/{record.id}/pdf?uid={UID}&inline=1')
    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert response.data.startswith(b'%PDF')
    assert response.headers['Content-Disposition'].startswith('inline;')


def test_prescription_text_includes_patient_details(app, patient, doctor):
    patient.allergies = ['Penicillin', 'penicillin ', 'Penicillin']
    db.session.commit()
    record = record_consultation(patient, doctor=doctor, diagnosis='Sinusitis', notes='Steam inhalation')

    text = prescription_text(record, 'MediQueue Clinic', generated_at=datetime(2026, 3, 5, 10, 30))
    assert 'Clinic Name: MediQueue Clinic' in text
    assert f'Patient ID: {UID}' in text
    assert 'ALLERGIES: Penicillin, penicillin' in text
    assert 'Doctor: Dr. Ravi Kumar' in text
    assert 'Sinusitis' in text
    assert 'Generated on: 2026-03-05 10:30:00' in text
    assert MedicalHistory.query.count() == 1


def test_export_filename(patient):
    assert export_filename(patient, 'Prescription', datetime(2026, 3, 5)) == 'Prescription_Asha_Rao_2026-03-05.txt'
