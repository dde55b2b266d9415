"""
Health routes: liveness, circuit breaker state, manual survey poll.
"""
import logging
from flask import Blueprint, current_app, jsonify

from study_funnel.services.circuit_breaker import get_all_breakers

logger = logging.getLogger('routes.health')

bp = Blueprint('health', __name__)


@bp.route('/health')
def health_check():
    """Liveness probe."""
    return jsonify({"status": "healthy"}), 200


@bp.route('/api/health')
def api_health():
    """Circuit breaker health for every outbound collaborator."""
    services = {name: cb.get_health() for name, cb in get_all_breakers().items()}
    return jsonify({'services': services})


@bp.route('/api/health/<service>/reset', methods=['POST'])
def reset_circuit(service):
    breaker = get_all_breakers().get(service)
    if breaker is None:
        return jsonify({'error': f'Unknown service: {service}'}), 404
    breaker.reset()
    return jsonify({'ok': True, 'service': service})


@bp.route('/api/survey/poll', methods=['POST'])
def poll_survey():
    """Run one SurveyMonkey poll now instead of waiting for the schedule."""
    summary = current_app.extensions['survey_poller'].poll()
    return jsonify(summary)
