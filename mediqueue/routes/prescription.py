"""
Prescription lookup for patients (by UID) and consultation entry for doctors.
"""
from flask import Blueprint, request, jsonify, current_app, Response
from datetime import datetime
import logging

from mediqueue.extensions import db
from mediqueue.models import MedicalHistory, Patient
from mediqueue.services.notifications import get_channel
from mediqueue.services.prescription_service import (
    PATIENT_NOT_FOUND,
    search_prescriptions,
    record_consultation,
    prescription_text,
    history_text,
    export_filename,
    prescription_pdf,
    visit_for_patient,
)
from mediqueue.utils.decorators import require_role, current_staff
from mediqueue.utils.audit import log_audit
from mediqueue.utils.validators import validate_text, parse_id

logger = logging.getLogger(__name__)

prescription_bp = Blueprint("prescription", __name__, url_prefix="/api/prescriptions")


def _attachment(body, mimetype, download_name, inline=False):
    resp = Response(body, status=200, mimetype=mimetype)
    resp.headers["Content-Disposition"] = (
        f'{"inline" if inline else "attachment"}; filename="{download_name}"'
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


def _record_for_uid(record_id):
    """
    Medical history row by id, only if ?uid= names its patient.
    Returns (record, error_response).
    """
    uid = (request.args.get("uid") or "").strip().upper()
    record = db.session.get(MedicalHistory, record_id)
    if not record or not uid or record.patient_id != uid:
        return None, (jsonify({"success": False, "error": "Prescription not found"}), 404)
    return record, None


@prescription_bp.route("/search", methods=["GET"])
def search():
    """
    Public prescription lookup.
    Query param: uid (case-insensitive)
    """
    result = search_prescriptions(request.args.get("uid"))

    if result["error"]:
        if result["error"] == PATIENT_NOT_FOUND:
            status = 404
        elif not (request.args.get("uid") or "").strip():
            status = 400
        else:
            status = 500
        return jsonify({"success": False, "error": result["error"]}), status

    return jsonify({
        "success": True,
        "message": result["message"],
        "data": {
            "patient": result["patient"].to_dict(),
            "prescriptions": [r.to_dict() for r in result["prescriptions"]],
        }
    }), 200


@prescription_bp.route("/<uid>/download", methods=["GET"])
def download_history(uid):
    """All of a patient's prescriptions as one text file"""
    result = search_prescriptions(uid)
    if result["error"]:
        status = 404 if result["error"] == PATIENT_NOT_FOUND else 500
        return jsonify({"success": False, "error": result["error"]}), status
    if not result["prescriptions"]:
        return jsonify({"success": False, "error": result["message"]}), 404

    now = datetime.now()
    body = history_text(
        result["patient"], result["prescriptions"], current_app.config.get("CLINIC_NAME"), now
    )
    return _attachment(
        body.encode("utf-8"),
        "text/plain; charset=utf-8",
        export_filename(result["patient"], "Medical_History", now),
    )


@prescription_bp.route("/record/<int:record_id>/download", methods=["GET"])
def download_record(record_id):
    """One prescription as text. Query param: uid (must own the record)"""
    record, error = _record_for_uid(record_id)
    if error:
        return error

    now = datetime.now()
    body = prescription_text(record, current_app.config.get("CLINIC_NAME"), now)
    return _attachment(
        body.encode("utf-8"),
        "text/plain; charset=utf-8",
        export_filename(record.patient, "Prescription", now),
    )


@prescription_bp.route("/record/<int:record_id>/pdf", methods=["GET"])
def download_record_pdf(record_id):
    """
    One prescription as PDF.
    Query params: uid (must own the record), inline=1 to open in the browser
    """
    record, error = _record_for_uid(record_id)
    if error:
        return error

    try:
        body = prescription_pdf(record, current_app.config.get("CLINIC_NAME"))
    except Exception as e:
        logger.error(f"Error rendering prescription PDF {record_id}: {e}", exc_info=True)
        return jsonify({"success": False, "error": "Failed to generate PDF"}), 500

    inline = request.args.get("inline", request.args.get("preview")) in ("1", "true", "yes")
    download_name = f"prescription_{record.patient_id}_{record.id}.pdf"
    return _attachment(body, "application/pdf", download_name, inline=inline)


@prescription_bp.route("", methods=["POST"])
@require_role("doctor")
def create_prescription():
    """
    Record a consultation.
    Body: patient_uid, optional visit_id, diagnosis, prescription, notes, complete_visit
    At least one of diagnosis or prescription is required.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400
    staff = current_staff()

    for field in ("patient_uid", "diagnosis", "prescription", "notes"):
        error = validate_text(data.get(field), field)
        if error:
            return jsonify({"success": False, "error": error}), 400

    uid = (data.get("patient_uid") or "").strip().upper()
    if not uid:
        return jsonify({"success": False, "error": "patient_uid is required"}), 400
    patient = db.session.get(Patient, uid)
    if not patient:
        return jsonify({"success": False, "error": PATIENT_NOT_FOUND}), 404

    diagnosis = (data.get("diagnosis") or "").strip() or None
    prescription = (data.get("prescription") or "").strip() or None
    if not diagnosis and not prescription:
        return jsonify({
            "success": False,
            "error": "Diagnosis or prescription is required"
        }), 400

    visit = None
    if data.get("visit_id"):
        visit_id = parse_id(data["visit_id"])
        if visit_id is None:
            return jsonify({"success": False, "error": "Invalid visit_id"}), 400
        visit = visit_for_patient(visit_id, patient)
        if not visit:
            return jsonify({"success": False, "error": "Visit not found for this patient"}), 404

    try:
        record = record_consultation(
            patient,
            doctor=staff.doctor,
            visit=visit,
            diagnosis=diagnosis,
            prescription=prescription,
            notes=(data.get("notes") or "").strip() or None,
            complete_visit=bool(data.get("complete_visit")),
        )
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error recording prescription for {patient.id}: {e}", exc_info=True)
        return jsonify({"success": False, "error": "Failed to save prescription"}), 500

    log_audit("prescription", "create", staff_id=staff.id, entity_id=record.id,
              patient_uid=patient.id, details={"visit_id": record.visit_id})
    get_channel().success("Prescription saved", f"Saved for {patient.name}")

    return jsonify({
        "success": True,
        "message": "Prescription saved successfully",
        "data": record.to_dict()
    }), 201
