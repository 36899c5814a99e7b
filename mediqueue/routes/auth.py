from flask import Blueprint, request, jsonify, current_app
from flask_jwt_extended import create_access_token, jwt_required
from mediqueue.extensions import db
from mediqueue.models import Staff
from mediqueue.utils.decorators import current_staff
from mediqueue.utils.audit import log_audit
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/login', methods=['POST'])
def login():
    """Login endpoint - authenticates staff and returns a JWT access token"""
    data = request.get_json(silent=True)

    if not data or not isinstance(data, dict):
        return jsonify({
            'success': False,
            'error': 'Request body must be JSON'
        }), 400

    username = data.get('username')
    password = data.get('password')

    if not isinstance(username, str) or not isinstance(password, str) or not username or not password:
        return jsonify({
            'success': False,
            'error': 'Username and password required'
        }), 400

    staff = Staff.query.filter_by(username=username).first()

    if not staff or not staff.check_password(password):
        logger.info("Failed login for %s", username)
        return jsonify({
            'success': False,
            'error': 'Invalid username or password'
        }), 401

    if not staff.is_active:
        return jsonify({
            'success': False,
            'error': 'Account is deactivated'
        }), 403

    # Update login tracking
    staff.last_login = datetime.utcnow()
    staff.login_count = (staff.login_count or 0) + 1
    db.session.commit()

    # Identity must be a string for the JWT "sub" claim
    access_token = create_access_token(
        identity=str(staff.id),
        additional_claims={
            "username": staff.username,
            "role": staff.role,
        },
        fresh=True,
    )
    log_audit('staff', 'login', staff_id=staff.id, entity_id=staff.id)

    expires = current_app.config['JWT_ACCESS_TOKEN_EXPIRES']
    return jsonify({
        'success': True,
        'data': staff.to_dict(),
        'access_token': access_token,
        'token_type': 'bearer',
        'expires_in': int(expires.total_seconds())
    }), 200


@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    """Stateless JWT: the client discards the token"""
    return jsonify({
        'success': True,
        'message': 'Logged out successfully (delete tokens on client)'
    }), 200


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def get_current_user():
    """Get current logged-in staff information"""
    staff = current_staff()

    if not staff:
        return jsonify({
            'success': False,
            'error': 'User not found'
        }), 404

    if not staff.is_active:
        return jsonify({
            'success': False,
            'error': 'Account is deactivated'
        }), 403

    return jsonify({
        'success': True,
        'data': staff.to_dict()
    }), 200
