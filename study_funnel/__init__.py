"""
Flask application factory.

Creates and configures the app, wires the transition engine and survey
poller from configuration, registers blueprints and error handlers, and
starts the hourly SurveyMonkey poll when enabled.
"""
import hmac
import logging

from flask import Flask, request, jsonify

logger = logging.getLogger('study_funnel')

# /api routes reachable without the API token
OPEN_PATHS = {'/health', '/api/interested', '/api/sendbooking'}


def _install_auth(app, api_token):
    """Bearer-token guard for /api. Open access when no token is configured (local dev)."""

    @app.before_request
    def require_token():
        if not api_token:
            return
        if request.path in OPEN_PATHS or not request.path.startswith('/api/'):
            return
        header = request.headers.get('Authorization', '')
        if header.startswith('Bearer ') and hmac.compare_digest(header[len('Bearer '):], api_token):
            return
        return jsonify({'error': 'Unauthorized'}), 401


def _install_error_handlers(app):
    from werkzeug.exceptions import HTTPException
    from study_funnel.errors import StudyFunnelError

    @app.errorhandler(StudyFunnelError)
    def handle_domain_error(e):
        if e.status_code >= 500:
            logger.error("%s on %s %s: %s", type(e).__name__, request.method, request.path, e.details or e)
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'error': e.name}), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        logger.error("Unhandled error on %s %s", request.method, request.path, exc_info=True)
        return jsonify({'error': 'Internal server error', 'details': str(e)}), 500


def _start_poll_scheduler(poller, interval_minutes):
    from apscheduler.schedulers.background import BackgroundScheduler

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        poller.poll,
        'interval',
        minutes=interval_minutes,
        id='survey_poller',
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    # first pass right away instead of an interval after start-up
    scheduler.add_job(poller.poll, id='survey_poller_startup')
    scheduler.start()
    logger.info("Survey poller started, every %d minutes", interval_minutes)
    return scheduler


def create_app():
    """Create and configure the Flask application."""
    from study_funnel import config
    from study_funnel.logging_config import configure_logging

    app = Flask(__name__)

    configure_logging(app)

    # Collaborators
    from study_funnel.extensions import redis_client
    from study_funnel.services.circuit_breaker import init_breakers
    from study_funnel.services.poller import SurveyPoller
    from study_funnel.services.surveymonkey import SurveyMonkeyClient
    from study_funnel.services.transitions import TransitionEngine
    from study_funnel.services.webhook import WebhookSink

    init_breakers(redis_client)

    if not config.POWER_AUTOMATE_WEBHOOK_URL:
        logger.warning("POWER_AUTOMATE_WEBHOOK_URL not set, participant emails will be skipped")

    survey_client = SurveyMonkeyClient(
        token=config.SURVEYMONKEY_TOKEN,
        survey_id=config.SURVEY_ID,
        api_url=config.SURVEYMONKEY_API_URL,
    )
    engine = TransitionEngine(
        sink=WebhookSink(config.POWER_AUTOMATE_WEBHOOK_URL),
        catalog_source=survey_client,
        local_timezone=config.LOCAL_TIMEZONE,
    )
    poller = SurveyPoller(source=survey_client, engine=engine)

    app.extensions['transition_engine'] = engine
    app.extensions['survey_poller'] = poller

    _install_auth(app, config.API_TOKEN)
    _install_error_handlers(app)

    # Register blueprints
    from study_funnel.routes.health import bp as health_bp
    from study_funnel.routes.intake import bp as intake_bp
    from study_funnel.routes.notifications import bp as notifications_bp
    from study_funnel.routes.participants import bp as participants_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(intake_bp)
    app.register_blueprint(notifications_bp)
    app.register_blueprint(participants_bp)

    # Import models so Base.metadata knows about them.
    # Schema is managed by Alembic, no create_all() here.
    import importlib
    importlib.import_module('study_funnel.models.participant')
    importlib.import_module('study_funnel.models.notification')
    importlib.import_module('study_funnel.models.booking')
    importlib.import_module('study_funnel.models.survey_response')

    if config.SURVEY_POLL_ENABLED:
        if survey_client.configured:
            app.extensions['poll_scheduler'] = _start_poll_scheduler(
                poller, config.SURVEY_POLL_INTERVAL_MINUTES,
            )
        else:
            logger.warning("SURVEYMONKEY_TOKEN or SURVEY_ID not set, survey polling disabled")

    return app
