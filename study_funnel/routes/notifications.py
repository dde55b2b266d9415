"""
Notification routes: the staff review queue.
"""
from flask import Blueprint, current_app, jsonify

bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')


def _engine():
    return current_app.extensions['transition_engine']


@bp.route('')
def list_notifications():
    return jsonify(_engine().list_notifications())


@bp.route('/<int:notification_id>/approve', methods=['POST'])
def approve(notification_id):
    return jsonify(_engine().approve(notification_id))


@bp.route('/<int:notification_id>/reject', methods=['POST'])
def reject(notification_id):
    return jsonify(_engine().reject(notification_id))


@bp.route('/<int:notification_id>/approve-pre-screen', methods=['POST'])
def approve_pre_screen(notification_id):
    return jsonify(_engine().approve_pre_screen(notification_id))


@bp.route('/<int:notification_id>/reject-pre-screen', methods=['POST'])
def reject_pre_screen(notification_id):
    return jsonify(_engine().reject_pre_screen(notification_id))


@bp.route('/<int:notification_id>/survey-response')
def survey_response(notification_id):
    """Formatted pre-screen answers for the notification's participant."""
    return jsonify(_engine().survey_response(notification_id))
