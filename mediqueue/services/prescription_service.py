"""
Prescriptions: lookup by patient UID, consultation records, and the
plain-text / PDF exports handed to patients.
"""
import io
import logging
from datetime import datetime
from xml.sax.saxutils import escape as xml_escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from mediqueue.extensions import db
from mediqueue.models import Patient, MedicalHistory, Visit
from mediqueue.services.data_access import safe_query
from mediqueue.utils.formatting import format_date, format_time

logger = logging.getLogger(__name__)

RULE = '═' * 63

PATIENT_NOT_FOUND = 'Patient not found. Please check the UID and try again.'
NO_PRESCRIPTIONS = 'No prescriptions found for this patient.'

INSTRUCTIONS = [
    'Take medicines as prescribed by the doctor',
    'Complete the full course of medication',
    'Do not share medicines with others',
    'Consult doctor if you experience any side effects',
    'Keep medicines away from children',
    'Store medicines in a cool, dry place',
]


def search_prescriptions(uid):
    """
    Look up a patient's consultation records by UID.

    Returns a dict with keys found, patient, prescriptions, message, error.
    A known patient with no records is not an error: prescriptions is empty
    and message says so.
    """
    uid = (uid or '').strip().upper()
    result = {'found': False, 'patient': None, 'prescriptions': [], 'message': None, 'error': None}
    if not uid:
        result['error'] = 'Please enter a valid Patient UID'
        return result

    patient, error = safe_query(lambda: db.session.get(Patient, uid))
    if error:
        result['error'] = 'An error occurred while searching. Please try again.'
        return result
    if not patient:
        result['error'] = PATIENT_NOT_FOUND
        return result

    records, error = safe_query(
        lambda: MedicalHistory.query.filter_by(patient_id=patient.id)
        .order_by(MedicalHistory.created_at.desc(), MedicalHistory.id.desc())
        .all()
    )
    if error:
        result['error'] = 'Error fetching medical records. Please try again.'
        return result

    result['found'] = True
    result['patient'] = patient
    result['prescriptions'] = records
    if records:
        result['message'] = f'Found {len(records)} prescription(s) for {patient.name}'
    else:
        result['message'] = NO_PRESCRIPTIONS
    return result


def record_consultation(patient, doctor=None, visit=None, diagnosis=None, prescription=None,
                        notes=None, complete_visit=False):
    """Append a medical history row; optionally complete a visit that is in service."""
    record = MedicalHistory(
        patient_id=patient.id,
        visit_id=visit.id if visit else None,
        doctor_id=doctor.id if doctor else None,
        diagnosis=diagnosis,
        prescription=prescription,
        notes=notes,
    )
    db.session.add(record)
    if visit is not None and complete_visit and visit.can_transition_to('completed'):
        visit.status = 'completed'
    db.session.commit()
    logger.info("Recorded consultation %s for patient %s", record.id, patient.id)
    return record


def _lines(*parts):
    return '\n'.join(p for p in parts if p is not None)


def prescription_text(record, clinic_name, generated_at=None):
    patient = record.patient
    doctor = record.doctor
    visit = record.visit
    generated_at = generated_at or datetime.now()

    def na(value):
        return value if value not in (None, '') else 'N/A'

    patient_block = _lines(
        'PATIENT INFORMATION:',
        f'Patient ID: {na(patient.id if patient else None)}',
        f'Name: {na(patient.name if patient else None)}',
        f'Age: {na(patient.age if patient else None)} years',
        f'Phone: {na(patient.phone if patient else None)}',
        f'Email: {patient.email}' if patient and patient.email else None,
        f'Blood Group: {patient.blood_group}' if patient and patient.blood_group else None,
    )
    if patient and patient.allergies:
        patient_block += f"\n\n⚠️  ALLERGIES: {', '.join(patient.allergies)}"
    if patient and patient.medical_conditions:
        patient_block += f"\n\n📋 MEDICAL CONDITIONS: {', '.join(patient.medical_conditions)}"

    doctor_block = _lines(
        'DOCTOR INFORMATION:',
        f'Doctor: {na(doctor.name if doctor else None)}',
        f'Qualification: {doctor.qualification}' if doctor and doctor.qualification else None,
        f'Specialization: {na(doctor.specialization if doctor else None)}',
        f'Experience: {doctor.experience_years} years' if doctor and doctor.experience_years else None,
    )

    visit_block = _lines(
        'VISIT INFORMATION:',
        f'Token Number: #{visit.stn}' if visit else None,
        f'Department: {visit.department.capitalize()}' if visit else None,
        f'Visit Date: {format_date(visit.visit_date)}' if visit else None,
    )

    body = []
    if record.diagnosis:
        body.append(f'🔍 DIAGNOSIS:\n{record.diagnosis}')
    if record.prescription:
        body.append(f'💊 PRESCRIPTION:\n{record.prescription}')
    if record.notes:
        body.append(f'📝 ADDITIONAL NOTES:\n{record.notes}')

    instructions = '\n'.join(f'• {line}' for line in INSTRUCTIONS)

    return '\n\n'.join([
        f'{RULE}\n{"MEDICAL PRESCRIPTION":^63}\n{RULE}',
        _lines(
            'CLINIC INFORMATION:',
            f'Clinic Name: {clinic_name}',
            f'Date: {format_date(record.created_at)}',
            f'Time: {format_time(record.created_at)}',
        ),
        patient_block,
        doctor_block,
        visit_block,
        f'{RULE}\n{"PRESCRIPTION":^63}\n{RULE}',
        '\n\n'.join(body) if body else 'No prescription details recorded.',
        RULE,
        f'⚠️  IMPORTANT INSTRUCTIONS:\n{instructions}',
        f'{RULE}\nThis is a digitally generated prescription.\n'
        f'Generated on: {generated_at.strftime("%Y-%m-%d %H:%M:%S")}\n{RULE}',
    ])


def history_text(patient, records, clinic_name, generated_at=None):
    generated_at = generated_at or datetime.now()
    sections = [
        f'{RULE}\n{"COMPLETE MEDICAL HISTORY":^63}\n{RULE}',
        _lines(
            f'PATIENT: {patient.name}',
            f'PATIENT ID: {patient.id}',
            f'TOTAL PRESCRIPTIONS: {len(records)}',
            f'GENERATED ON: {generated_at.strftime("%Y-%m-%d %H:%M:%S")}',
        ),
        RULE,
    ]
    for index, record in enumerate(records, start=1):
        sections.append(f'PRESCRIPTION #{index}\n{prescription_text(record, clinic_name, generated_at)}')
        sections.append('═' * 67)
    sections.append(f'END OF MEDICAL HISTORY\n{RULE}')
    return '\n\n'.join(sections)


def export_filename(patient, prefix, when):
    name = '_'.join((patient.name if patient else 'patient').split())
    return f"{prefix}_{name}_{when.strftime('%Y-%m-%d')}.txt"


def prescription_pdf(record, clinic_name):
    """Styled single-page prescription PDF; returns the PDF bytes."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=A4,
        leftMargin=2*cm, rightMargin=2*cm, topMargin=2*cm, bottomMargin=2*cm
    )
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        name='PrescriptionTitle',
        parent=styles['Heading1'],
        fontSize=22,
        textColor=colors.HexColor('#2563eb'),
        spaceAfter=6,
        alignment=1,
    )
    heading_style = ParagraphStyle(
        name='SectionHeading',
        parent=styles['Heading2'],
        fontSize=13,
        textColor=colors.HexColor('#2563eb'),
        spaceAfter=6,
    )
    normal = styles['Normal']

    patient = record.patient
    doctor = record.doctor
    visit = record.visit

    def p(text):
        return Paragraph(xml_escape(str(text)).replace('\n', '<br/>'), normal)

    story = [
        Paragraph(xml_escape(clinic_name), title_style),
        Paragraph("PRESCRIPTION", heading_style),
        p(f"Date: {format_date(record.created_at)}  {format_time(record.created_at)}"),
        Spacer(1, 12),
    ]

    info_rows = [
        ['Patient ID', patient.id if patient else 'N/A', 'Doctor', doctor.name if doctor else 'N/A'],
        ['Name', patient.name if patient else 'N/A', 'Specialization', doctor.specialization if doctor else 'N/A'],
        ['Age', f"{patient.age} years" if patient and patient.age else 'N/A',
         'Token', f"#{visit.stn}" if visit else 'N/A'],
        ['Phone', patient.phone if patient else 'N/A',
         'Department', visit.department.capitalize() if visit else 'N/A'],
    ]
    info_table = Table(info_rows, colWidths=[3*cm, 5.5*cm, 3*cm, 5.5*cm])
    info_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#eff6ff')),
        ('BACKGROUND', (2, 0), (2, -1), colors.HexColor('#eff6ff')),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#d1d5db')),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ]))
    story.append(info_table)
    story.append(Spacer(1, 12))

    if patient and patient.allergies:
        story.append(p(f"Allergies: {', '.join(patient.allergies)}"))
        story.append(Spacer(1, 6))

    for label, value in (('Diagnosis', record.diagnosis),
                         ('Prescription', record.prescription),
                         ('Notes', record.notes)):
        if value:
            story.append(Paragraph(label, heading_style))
            story.append(p(value))
            story.append(Spacer(1, 8))

    story.append(Spacer(1, 16))
    story.append(Paragraph("Important instructions", heading_style))
    for line in INSTRUCTIONS:
        story.append(p(f"• {line}"))

    doc.build(story)
    return buffer.getvalue()


def visit_for_patient(visit_id, patient):
    """Visit by id if it belongs to the patient, else None."""
    if not visit_id:
        return None
    visit = db.session.get(Visit, visit_id)
    if visit is None or visit.patient_id != patient.id:
        return None
    return visit
