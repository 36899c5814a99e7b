"""
Patient history: summary figures and the printable medical-history report.
"""
import logging
from datetime import datetime

from markupsafe import escape

from mediqueue.utils.formatting import format_date

logger = logging.getLogger(__name__)

VISIT_BADGES = {
    'completed': 'background-color: #dcfce7; color: #166534;',
    'in_service': 'background-color: #dbeafe; color: #1e40af;',
}
DEFAULT_VISIT_BADGE = 'background-color: #fef3c7; color: #92400e;'


def history_summary(visits, records):
    total_paid = 0.0
    for visit in visits:
        total_paid += sum(float(t.amount) for t in visit.transactions if t.status == 'completed')
    return {
        'total_visits': len(visits),
        'completed_visits': sum(1 for v in visits if v.status == 'completed'),
        'total_prescriptions': len(records),
        'departments': len({v.department for v in visits}),
        'total_paid': total_paid,
    }


def _e(value):
    return escape(value if value not in (None, '') else 'N/A')


def _joined(values):
    return escape(', '.join(str(v) for v in values))


def _multiline(value):
    return str(escape(value)).replace('\n', '<br>')


def _record_block(record):
    doctor = record.doctor.name if record.doctor else 'Unknown Doctor'
    parts = [
        '<div class="record">',
        f'<div class="record-head"><h3>{format_date(record.created_at)}</h3>'
        f'<span class="badge">{escape(doctor)}</span></div>',
    ]
    if record.diagnosis:
        parts.append(f'<h4>Diagnosis</h4><p class="diagnosis">{_multiline(record.diagnosis)}</p>')
    if record.prescription:
        parts.append(f'<h4>Prescription</h4><p class="prescription">{_multiline(record.prescription)}</p>')
    if record.notes:
        parts.append(f'<h4>Notes</h4><p class="notes">{_multiline(record.notes)}</p>')
    parts.append('</div>')
    return '\n'.join(parts)


def _visit_row(visit):
    badge = VISIT_BADGES.get(visit.status, DEFAULT_VISIT_BADGE)
    doctor = visit.doctor.name if visit.doctor else None
    return (
        f'<tr><td>{format_date(visit.visit_date)}</td>'
        f'<td>#{visit.stn}</td>'
        f'<td>{escape(visit.department.capitalize())}</td>'
        f'<td>{_e(doctor)}</td>'
        f'<td><span class="status" style="{badge}">{escape(visit.status.replace("_", " "))}</span></td></tr>'
    )


PAGE_STYLE = """
      @media print { body { margin: 0; } .no-print { display: none; } }
      body { font-family: Arial, sans-serif; }
      .report { max-width: 800px; margin: 0 auto; padding: 20px; }
      .header { text-align: center; border-bottom: 2px solid #333; padding-bottom: 20px; margin-bottom: 20px; }
      h2 { color: #333; border-bottom: 2px solid #2563eb; padding-bottom: 10px; }
      .callout { margin-top: 15px; padding: 10px; border-radius: 4px; }
      .allergies { background-color: #fef2f2; border-left: 4px solid #ef4444; color: #991b1b; }
      .conditions { background-color: #fef3c7; border-left: 4px solid #f59e0b; color: #92400e; }
      .figures { display: grid; grid-template-columns: repeat(4, 1fr); gap: 15px; }
      .figure { text-align: center; padding: 15px; background-color: #f3f4f6; border-radius: 8px; }
      .figure h3 { margin: 0; font-size: 24px; color: #2563eb; }
      .record { margin: 20px 0; padding: 20px; border: 1px solid #e5e7eb; border-radius: 8px; background-color: #fafafa; }
      .record-head { display: flex; justify-content: space-between; align-items: center; }
      .badge { background-color: #dbeafe; color: #1e40af; padding: 4px 8px; border-radius: 4px; font-size: 12px; }
      .diagnosis { padding: 10px; background-color: #eff6ff; color: #1e40af; }
      .prescription { padding: 10px; background-color: #f0fdf4; color: #166534; }
      .notes { padding: 10px; background-color: #fefce8; color: #a16207; }
      table { width: 100%; border-collapse: collapse; }
      th, td { padding: 12px; text-align: left; border: 1px solid #e5e7eb; }
      .status { padding: 4px 8px; border-radius: 4px; font-size: 12px; text-transform: uppercase; }
      .footer { text-align: center; border-top: 1px solid #e5e7eb; padding-top: 20px; margin-top: 30px; font-size: 12px; color: #6b7280; }"""

PRINT_BUTTONS = """    <div class="no-print" style="text-align: center; margin-top: 20px;">
      <button onclick="window.print()">Print Report</button>
      <button onclick="window.close()">Close</button>
    </div>"""


def patient_report_html(patient, visits, records, clinic_name, generated_at=None):
    """
    Printable medical-history report: patient details, allergy and condition
    callouts, visit summary figures, every medical record and the visit table.
    """
    generated_at = generated_at or datetime.now()
    summary = history_summary(visits, records)

    optional = []
    if patient.email:
        optional.append(f'<p><strong>Email:</strong> {escape(patient.email)}</p>')
    if patient.blood_group:
        optional.append(f'<p><strong>Blood Group:</strong> {escape(patient.blood_group)}</p>')
    if patient.emergency_contact:
        optional.append(f'<p><strong>Emergency Contact:</strong> {escape(patient.emergency_contact)}</p>')

    callouts = []
    if patient.allergies:
        callouts.append(f'<div class="callout allergies"><h4>Allergies</h4><p>{_joined(patient.allergies)}</p></div>')
    if patient.medical_conditions:
        callouts.append(
            f'<div class="callout conditions"><h4>Medical Conditions</h4>'
            f'<p>{_joined(patient.medical_conditions)}</p></div>'
        )

    figures = [
        (summary['total_visits'], 'Total Visits'),
        (summary['completed_visits'], 'Completed'),
        (summary['total_prescriptions'], 'Medical Records'),
        (summary['departments'], 'Departments'),
    ]
    figure_html = '\n'.join(
        f'<div class="figure"><h3>{value}</h3><p>{label}</p></div>' for value, label in figures
    )

    history_section = ''
    if records:
        history_section = '<h2>Medical History</h2>\n' + '\n'.join(_record_block(r) for r in records)

    rows = '\n'.join(_visit_row(v) for v in visits) or '<tr><td colspan="5">No visits recorded</td></tr>'

    return f"""<html>
  <head>
    <title>Medical History - {escape(patient.name)}</title>
    <style>{PAGE_STYLE}
    </style>
  </head>
  <body>
    <div class="report">
      <div class="header">
        <h1 style="color: #2563eb; margin: 0;">{_e(clinic_name)}</h1>
        <p>Patient Medical History Report</p>
        <p>Generated on: {format_date(generated_at)}</p>
      </div>
      <h2>Patient Information</h2>
      <p><strong>Name:</strong> {escape(patient.name)}</p>
      <p><strong>Age:</strong> {_e(patient.age)} years</p>
      <p><strong>Phone:</strong> {escape(patient.phone)}</p>
      <p><strong>Patient ID:</strong> {escape(patient.id)}</p>
      {''.join(optional)}
      <p><strong>Registered:</strong> {format_date(patient.created_at)}</p>
      {''.join(callouts)}
      <h2>Visit Summary</h2>
      <div class="figures">
{figure_html}
      </div>
      {history_section}
      <h2>Visit History</h2>
      <table>
        <thead><tr><th>Date</th><th>Token</th><th>Department</th><th>Doctor</th><th>Status</th></tr></thead>
        <tbody>
{rows}
        </tbody>
      </table>
      <div class="footer">
        <p>This report was generated by {_e(clinic_name)}</p>
        <p>For any queries, please contact the clinic administration</p>
      </div>
    </div>
{PRINT_BUTTONS}
  </body>
</html>"""


def record_html(record):
    """Printable page for one medical record."""
    patient = record.patient
    doctor = record.doctor.name if record.doctor else 'Unknown'
    sections = []
    if record.diagnosis:
        sections.append(f'<h3>Diagnosis</h3><p>{_multiline(record.diagnosis)}</p>')
    if record.prescription:
        sections.append(f'<h3>Prescription</h3><pre>{escape(record.prescription)}</pre>')
    if record.notes:
        sections.append(f'<h3>Notes</h3><p>{_multiline(record.notes)}</p>')

    return f"""<html>
  <head>
    <title>Medical Record</title>
    <style>
      @media print {{ body {{ margin: 0; }} .no-print {{ display: none; }} }}
      body {{ font-family: Arial, sans-serif; }}
      .record {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
    </style>
  </head>
  <body>
    <div class="record">
      <h1>Medical Record</h1>
      <p><strong>Date:</strong> {format_date(record.created_at)}</p>
      <p><strong>Doctor:</strong> {escape(doctor)}</p>
      <p><strong>Patient:</strong> {_e(patient.name if patient else None)}</p>
      {''.join(sections)}
    </div>
{PRINT_BUTTONS}
  </body>
</html>"""
