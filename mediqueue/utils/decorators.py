from functools import wraps
from flask import jsonify
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from mediqueue.extensions import db
from mediqueue.models import Staff


def current_staff():
    """Staff row for the JWT on the current request, or None."""
    try:
        user_id = int(get_jwt_identity())
    except (TypeError, ValueError):
        return None
    return db.session.get(Staff, user_id)


def require_role(*roles):
    """
    Decorator to require specific roles
    Usage: @require_role('admin', 'receptionist')
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()
            user = current_staff()

            if not user or not user.is_active:
                return jsonify({
                    'success': False,
                    'error': 'Authentication required'
                }), 401

            if user.role not in roles:
                return jsonify({
                    'success': False,
                    'error': f'Permission denied. Required roles: {", ".join(roles)}'
                }), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator
