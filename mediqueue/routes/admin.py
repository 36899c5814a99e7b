from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import get_jwt_identity
from decimal import Decimal, InvalidOperation
import logging
import re

from mediqueue.extensions import db
from mediqueue.models import Doctor, Department
from mediqueue.utils.decorators import require_role
from mediqueue.utils.audit import log_audit
from mediqueue.utils.validators import validate_required, validate_text, sanitize_input

logger = logging.getLogger(__name__)

admin_bp = Blueprint("admin", __name__, url_prefix="/api")

DOCTOR_STATUSES = ["active", "inactive"]
COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


def _fee(value):
    try:
        fee = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return None
    return fee if fee.is_finite() and fee >= 0 else None


def _apply_doctor_fields(doctor, data):
    """Copy editable doctor fields from the request body; returns an error message or None."""
    if "name" in data:
        error = validate_required(data["name"], "Name")
        if error:
            return error
        doctor.name = sanitize_input(data["name"])
    if "specialization" in data:
        error = validate_text(data["specialization"], "Specialization")
        if error:
            return error
        specialization = (data["specialization"] or "").strip().lower()
        if not Department.query.filter_by(name=specialization).first():
            return f'Department "{specialization}" not found'
        doctor.specialization = specialization
    if "qualification" in data:
        doctor.qualification = sanitize_input(data["qualification"]) or None
    if "experience_years" in data:
        try:
            years = int(data["experience_years"] or 0)
        except (TypeError, ValueError):
            return "Experience must be a whole number of years"
        if years < 0:
            return "Experience must be a whole number of years"
        doctor.experience_years = years
    if "consultation_fee" in data:
        fee = _fee(data["consultation_fee"])
        if fee is None:
            return "Consultation fee must be a non-negative number"
        doctor.consultation_fee = fee
    if "status" in data:
        if data["status"] not in DOCTOR_STATUSES:
            return f'Invalid status. Must be one of: {", ".join(DOCTOR_STATUSES)}'
        doctor.status = data["status"]
    return None


@admin_bp.route("/doctors", methods=["GET"])
def list_doctors():
    """
    List doctors.
    Query params: department (specialization), status (default active, 'all' for every doctor)
    """
    try:
        query = Doctor.query
        department = request.args.get("department", "").strip().lower()
        status = request.args.get("status", "active")
        if department:
            query = query.filter(Doctor.specialization == department)
        if status != "all":
            query = query.filter(Doctor.status == status)

        doctors = query.order_by(Doctor.name).all()
        return jsonify({
            "success": True,
            "data": [d.to_dict() for d in doctors]
        }), 200
    except Exception as e:
        logger.error(f"Error listing doctors: {e}", exc_info=True)
        db.session.rollback()
        return jsonify({
            "success": False,
            "error": "Failed to list doctors"
        }), 500


@admin_bp.route("/doctors", methods=["POST"])
@require_role("admin")
def create_doctor():
    """Create a doctor. Required: name, specialization"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400
    for field, label in (("name", "Name"), ("specialization", "Specialization")):
        error = validate_required(data.get(field), label) or validate_text(data.get(field), label)
        if error:
            return jsonify({"success": False, "error": error}), 400

    try:
        doctor = Doctor(status="active")
        error = _apply_doctor_fields(doctor, data)
        if error:
            return jsonify({"success": False, "error": error}), 400

        db.session.add(doctor)
        db.session.commit()
        log_audit("doctor", "create", staff_id=int(get_jwt_identity()), entity_id=doctor.id)

        return jsonify({
            "success": True,
            "message": "Doctor created successfully",
            "data": doctor.to_dict()
        }), 201
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating doctor: {e}", exc_info=True)
        error_msg = "Failed to create doctor" if not current_app.debug else str(e)
        return jsonify({"success": False, "error": error_msg}), 500


@admin_bp.route("/doctors/<int:doctor_id>", methods=["PUT"])
@require_role("admin")
def update_doctor(doctor_id):
    """Update doctor profile or status"""
    doctor = db.session.get(Doctor, doctor_id)
    if not doctor:
        return jsonify({"success": False, "error": "Doctor not found"}), 404

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400
    try:
        error = _apply_doctor_fields(doctor, data)
        if error:
            db.session.rollback()
            return jsonify({"success": False, "error": error}), 400

        db.session.commit()
        log_audit("doctor", "update", staff_id=int(get_jwt_identity()), entity_id=doctor.id,
                  details={k: data[k] for k in data if k != "id"})

        return jsonify({
            "success": True,
            "message": "Doctor updated successfully",
            "data": doctor.to_dict()
        }), 200
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating doctor {doctor_id}: {e}", exc_info=True)
        error_msg = "Failed to update doctor" if not current_app.debug else str(e)
        return jsonify({"success": False, "error": error_msg}), 500


def _apply_department_fields(department, data):
    if "display_name" in data:
        error = validate_required(data["display_name"], "Display name")
        if error:
            return error
        department.display_name = sanitize_input(data["display_name"])
    if "description" in data:
        department.description = sanitize_input(data["description"]) or None
    if "consultation_fee" in data:
        fee = _fee(data["consultation_fee"])
        if fee is None:
            return "Consultation fee must be a non-negative number"
        department.consultation_fee = fee
    if "average_consultation_time" in data:
        try:
            minutes = int(data["average_consultation_time"])
        except (TypeError, ValueError):
            return "Average consultation time must be a positive number of minutes"
        if minutes < 1:
            return "Average consultation time must be a positive number of minutes"
        department.average_consultation_time = minutes
    if "color_code" in data:
        if not isinstance(data["color_code"], str) or not COLOR_RE.match(data["color_code"]):
            return "Color code must look like #3B82F6"
        department.color_code = data["color_code"]
    if "is_active" in data:
        department.is_active = bool(data["is_active"])
    return None


@admin_bp.route("/departments", methods=["POST"])
@require_role("admin")
def create_department():
    """Create a department. Required: name, display_name"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400
    for field, label in (("name", "Name"), ("display_name", "Display name")):
        error = validate_required(data.get(field), label) or validate_text(data.get(field), label)
        if error:
            return jsonify({"success": False, "error": error}), 400

    name = data["name"].strip().lower()
    if Department.query.filter_by(name=name).first():
        return jsonify({"success": False, "error": f'Department "{name}" already exists'}), 409

    try:
        department = Department(name=name, is_active=True)
        error = _apply_department_fields(department, data)
        if error:
            return jsonify({"success": False, "error": error}), 400

        db.session.add(department)
        db.session.commit()
        log_audit("department", "create", staff_id=int(get_jwt_identity()), entity_id=department.name)

        return jsonify({
            "success": True,
            "message": "Department created successfully",
            "data": department.to_dict()
        }), 201
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error creating department: {e}", exc_info=True)
        return jsonify({"success": False, "error": "Failed to create department"}), 500


@admin_bp.route("/departments/<name>", methods=["PUT"])
@require_role("admin")
def update_department(name):
    """Update department details; the name itself is fixed"""
    department = Department.query.filter_by(name=name.strip().lower()).first()
    if not department:
        return jsonify({"success": False, "error": "Department not found"}), 404

    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400
    try:
        error = _apply_department_fields(department, data)
        if error:
            db.session.rollback()
            return jsonify({"success": False, "error": error}), 400

        db.session.commit()
        log_audit("department", "update", staff_id=int(get_jwt_identity()), entity_id=department.name,
                  details=data)

        return jsonify({
            "success": True,
            "message": "Department updated successfully",
            "data": department.to_dict()
        }), 200
    except Exception as e:
        db.session.rollback()
        logger.error(f"Error updating department {name}: {e}", exc_info=True)
        return jsonify({"success": False, "error": "Failed to update department"}), 500
