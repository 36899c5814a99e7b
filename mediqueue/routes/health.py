"""
Health check endpoints for monitoring and load balancers
"""
from flask import Blueprint, jsonify, current_app
from datetime import datetime

from mediqueue.services.data_access import probe_connection

health_bp = Blueprint('health', __name__, url_prefix='/health')


@health_bp.route('', methods=['GET'])
@health_bp.route('/ping', methods=['GET'])
def health_check():
    """Basic health check - no database connection"""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': 'mediqueue'
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness_check():
    """Readiness check - probes the database; call again to retry"""
    if not current_app.config.get('DATA_SERVICE_CONFIGURED'):
        db_status = 'not_configured'
    elif probe_connection():
        db_status = 'connected'
    else:
        db_status = 'unreachable'

    return jsonify({
        'status': 'ready' if db_status == 'connected' else 'not_ready',
        'database': db_status,
        'timestamp': datetime.utcnow().isoformat()
    }), 200 if db_status == 'connected' else 503


@health_bp.route('/live', methods=['GET'])
def liveness_check():
    """Liveness check for Kubernetes/containers"""
    return jsonify({
        'status': 'alive',
        'timestamp': datetime.utcnow().isoformat()
    }), 200


@health_bp.route('/setup', methods=['GET'])
def setup_status():
    """Whether the database connection settings are present"""
    from mediqueue import SETUP_STEPS

    configured = bool(current_app.config.get('DATA_SERVICE_CONFIGURED'))
    return jsonify({
        'configured': configured,
        'setup_required': not configured,
        'setup': [] if configured else SETUP_STEPS,
        'timestamp': datetime.utcnow().isoformat()
    }), 200
