"""
Intake routes: inbound events from the mailbox and scheduling automations.

These are the only /api routes reachable without the API token.
"""
import logging
from flask import Blueprint, current_app, request, jsonify

bp = Blueprint('intake', __name__)

logger = logging.getLogger('routes.intake')


@bp.route('/api/interested', methods=['POST'])
def interested():
    """A prospective participant emailed the study inbox."""
    data = request.get_json(silent=True) or {}
    if not data.get('from_email'):
        return jsonify({'error': 'Email is required'}), 400

    engine = current_app.extensions['transition_engine']
    notification = engine.record_email_received(
        data['from_email'], data.get('subject'), data.get('body'),
    )
    return jsonify(notification), 201


@bp.route('/api/sendbooking', methods=['POST'])
def send_booking():
    """The scheduling tool confirmed a booking for a participant."""
    data = request.get_json(silent=True) or {}
    logger.info("Booking received for %s at %s", data.get('email'), data.get('startTime'))

    engine = current_app.extensions['transition_engine']
    participant = engine.record_booking(
        data.get('startTime'), data.get('endTime'), data.get('email'), data.get('body'),
    )
    return jsonify(participant), 200
