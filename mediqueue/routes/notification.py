from flask import Blueprint, request, jsonify
import logging

from mediqueue.services.notifications import get_channel, NOTIFICATION_KINDS
from mediqueue.utils.decorators import require_role

logger = logging.getLogger(__name__)

notification_bp = Blueprint('notification', __name__, url_prefix='/api/notifications')

STAFF_ROLES = ('admin', 'receptionist', 'doctor')


@notification_bp.route('', methods=['GET'])
def list_notifications():
    """Active notification stack, oldest first"""
    return jsonify({
        'success': True,
        'data': [n.to_dict() for n in get_channel().active()]
    }), 200


@notification_bp.route('', methods=['POST'])
@require_role(*STAFF_ROLES)
def publish_notification():
    """
    Publish a notification
    Body: kind (success/error/warning/info), title, optional message, duration_ms, persistent
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'success': False, 'error': 'Request body must be a JSON object'}), 400

    kind = data.get('kind', 'info')
    if kind not in NOTIFICATION_KINDS:
        return jsonify({
            'success': False,
            'error': f'Invalid kind. Must be one of: {", ".join(NOTIFICATION_KINDS)}'
        }), 400

    title = data.get('title')
    message = data.get('message')
    if title is not None and not isinstance(title, str):
        return jsonify({'success': False, 'error': 'title must be text'}), 400
    if message is not None and not isinstance(message, str):
        return jsonify({'success': False, 'error': 'message must be text'}), 400

    duration_ms = data.get('duration_ms')
    if duration_ms is not None:
        if isinstance(duration_ms, bool):
            return jsonify({'success': False, 'error': 'duration_ms must be an integer'}), 400
        try:
            duration_ms = int(duration_ms)
        except (TypeError, ValueError):
            return jsonify({'success': False, 'error': 'duration_ms must be an integer'}), 400
        if duration_ms < 0:
            return jsonify({'success': False, 'error': 'duration_ms must not be negative'}), 400

    try:
        notification_id = get_channel().publish(
            kind,
            (title or '').strip(),
            message,
            duration_ms=duration_ms,
            persistent=bool(data.get('persistent', False)),
        )
    except ValueError as e:
        return jsonify({'success': False, 'error': str(e)}), 400

    logger.info("Published %s notification %s", kind, notification_id)
    return jsonify({
        'success': True,
        'data': {'id': notification_id}
    }), 201


@notification_bp.route('/<notification_id>', methods=['DELETE'])
@require_role(*STAFF_ROLES)
def dismiss_notification(notification_id):
    """Dismiss one notification; unknown ids are a no-op"""
    dismissed = get_channel().dismiss(notification_id)
    return jsonify({
        'success': True,
        'dismissed': dismissed
    }), 200


@notification_bp.route('', methods=['DELETE'])
@require_role(*STAFF_ROLES)
def clear_notifications():
    get_channel().clear_all()
    return jsonify({'success': True}), 200
