"""
Participant routes: funnel tables for the dashboard.
"""
from flask import Blueprint, current_app, jsonify

bp = Blueprint('participants', __name__, url_prefix='/api/participants')


@bp.route('')
def list_participants():
    """Every participant, newest first."""
    return jsonify(current_app.extensions['transition_engine'].list_participants())


@bp.route('/eligible')
def eligible():
    """Eligible participants who have not booked yet."""
    return jsonify(current_app.extensions['transition_engine'].list_eligible())


@bp.route('/bookings')
def list_bookings():
    return jsonify(current_app.extensions['transition_engine'].list_bookings())
