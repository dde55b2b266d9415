"""
Logging for the funnel service: one stderr handler on the root logger.

The review UI and the automations only talk to /api, so that is all the
request hook records. Poll runs and webhook sends log under their own
`services.*` names; SQL echo, scheduler ticks and HTTP connection chatter
are held at WARNING.
"""
import json
import logging
import os
import sys
import time
from datetime import datetime, timezone

request_logger = logging.getLogger('routes.requests')

# Extra attributes attached by the request hook; copied into JSON entries
_REQUEST_FIELDS = ('method', 'path', 'status', 'duration_ms')


class JSONFormatter(logging.Formatter):
    """One JSON object per record; request fields are copied through when present."""

    def format(self, record):
        entry = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }
        for field in _REQUEST_FIELDS:
            if hasattr(record, field):
                entry[field] = getattr(record, field)
        if record.exc_info and record.exc_info[0] is not None:
            entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(entry)


_QUIET_LOGGERS = [
    'sqlalchemy.engine',      # statement echo
    'alembic.runtime',        # migration context chatter on every boot
    'urllib3',                # SurveyMonkey and Power Automate connections
    'apscheduler',            # one line per poll job run
    'werkzeug',               # duplicates the /api request log
]


def _install_request_logging(app):
    """Log one line per /api request; health probes are skipped."""
    from flask import g, request

    @app.before_request
    def _start_timer():
        g.request_started = time.monotonic()

    @app.after_request
    def _log_request(response):
        if not request.path.startswith('/api/'):
            return response
        started = g.get('request_started')
        duration_ms = round((time.monotonic() - started) * 1000, 1) if started else None
        request_logger.info(
            "%s %s → %d (%sms)", request.method, request.path, response.status_code, duration_ms,
            extra={
                'method': request.method,
                'path': request.path,
                'status': response.status_code,
                'duration_ms': duration_ms,
            },
        )
        return response


def configure_logging(app=None):
    """
    Install the stderr handler. Safe to call again: old handlers are dropped.

    LOG_LEVEL is a level name (default INFO); unknown names fall back to INFO.
    LOG_FORMAT "json" switches to one JSON object per line for the hosted
    log drain; anything else gives the bracketed text format.
    """
    level_name = os.getenv('LOG_LEVEL', 'INFO').upper()
    level = getattr(logging, level_name, logging.INFO)

    log_format = os.getenv('LOG_FORMAT', 'text').lower()

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if log_format == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            '[%(asctime)s] %(levelname)s %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
        ))

    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if app is not None:
        _install_request_logging(app)
