"""Shared test fixtures."""
import copy
import logging

import pytest
from unittest.mock import patch, MagicMock
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from study_funnel.database import Base
from study_funnel.services.survey_format import QuestionCatalog


@pytest.fixture
def db_engine():
    """In-memory SQLite engine with schema created, one shared connection."""
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    import study_funnel.models.participant
    import study_funnel.models.notification
    import study_funnel.models.booking
    import study_funnel.models.survey_response
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine)


@pytest.fixture
def db_session(session_factory):
    """Session for seeding and inspecting. Commit seeds before calling the engine."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def patch_get_session(session_factory):
    """Route every get_session() call to a fresh session on the test engine."""
    with patch('study_funnel.database.get_session', side_effect=lambda: session_factory()):
        yield


@pytest.fixture
def mock_redis():
    """Mock Redis client for circuit breakers."""
    mock = MagicMock()
    mock.get.return_value = None
    mock.hgetall.return_value = {}
    with patch('study_funnel.extensions.redis_client', mock):
        yield mock


# ── Collaborator fakes ───────────────────────────────────────────────────────

class FakeSink:
    """Records webhook sends instead of POSTing them."""

    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail

    def send(self, template, to_email, notification_id, status, **fields):
        self.sent.append({
            'template': template,
            'to_email': to_email,
            'notification_id': notification_id,
            'status': status,
            **fields,
        })
        return not self.fail

    def templates(self):
        return [s['template'] for s in self.sent]


class FakeSurveySource:
    """Stands in for SurveyMonkeyClient."""

    def __init__(self, details, responses=None):
        self.details = details
        self.responses = responses or []
        self.catalog_error = None
        self.fetch_error = None
        self.catalog_calls = 0

    def get_catalog(self):
        self.catalog_calls += 1
        if self.catalog_error:
            raise self.catalog_error
        return QuestionCatalog.from_details(self.details)

    def fetch_completed_responses(self):
        if self.fetch_error:
            raise self.fetch_error
        return copy.deepcopy(self.responses)


@pytest.fixture
def survey_details():
    """SurveyMonkey /details document for the pre-screen survey."""
    return {
        'id': 'survey-1',
        'title': 'Study pre-screen',
        'pages': [{
            'id': 'p1',
            'title': 'About you',
            'questions': [
                {'id': 'q1', 'family': 'open_ended', 'headings': [{'heading': 'Please provide your name (first)'}]},
                {'id': 'q2', 'family': 'open_ended', 'headings': [{'heading': 'Please provide your name (last)'}]},
                {'id': 'q3', 'family': 'open_ended', 'headings': [{'heading': 'What is your age?'}]},
                {'id': 'q4', 'family': 'open_ended', 'headings': [{'heading': 'Email address'}]},
                {
                    'id': 'q5', 'family': 'single_choice',
                    'headings': [{'heading': 'Do you wear glasses?'}],
                    'answers': {'choices': [{'id': 'c1', 'text': 'Yes'}, {'id': 'c2', 'text': 'No'}]},
                },
            ],
        }],
    }


@pytest.fixture
def make_survey_response():
    """Factory for completed SurveyMonkey responses."""
    def _make(response_id='resp-1', email='b@y.com', first='Jo', last='Lee', age='34',
              choice='c1', analyze_url='https://www.surveymonkey.com/analyze/browse/abc?respondent_id=1'):
        questions = [
            {'id': 'q1', 'answers': [{'text': first}] if first else []},
            {'id': 'q2', 'answers': [{'text': last}] if last else []},
            {'id': 'q3', 'answers': [{'text': age}] if age else []},
            {'id': 'q4', 'answers': [{'text': email}] if email else []},
            {'id': 'q5', 'answers': [{'choice_id': choice}] if choice else []},
        ]
        response = {
            'id': response_id,
            'response_status': 'completed',
            'pages': [{'id': 'p1', 'questions': questions}],
        }
        if analyze_url:
            response['analyze_url'] = analyze_url
        return response
    return _make


@pytest.fixture
def fake_sink():
    return FakeSink()


@pytest.fixture
def survey_source(survey_details):
    return FakeSurveySource(survey_details)


@pytest.fixture
def engine(fake_sink, survey_source):
    from study_funnel.services.transitions import TransitionEngine
    return TransitionEngine(
        sink=fake_sink,
        catalog_source=survey_source,
        local_timezone='America/New_York',
    )


@pytest.fixture
def poller(survey_source, engine):
    from study_funnel.services.poller import SurveyPoller
    return SurveyPoller(source=survey_source, engine=engine)


@pytest.fixture
def app_factory(mock_redis, engine, poller):
    """Build Flask test apps wired to the fake collaborators."""
    from study_funnel import create_app
    root = logging.getLogger()
    saved_level, saved_handlers = root.level, root.handlers[:]

    def _make(api_token=None):
        with patch('study_funnel.config.API_TOKEN', api_token), \
             patch('study_funnel.config.SURVEY_POLL_ENABLED', False):
            app = create_app()
        app.config['TESTING'] = True
        app.extensions['transition_engine'] = engine
        app.extensions['survey_poller'] = poller
        return app

    yield _make

    root.setLevel(saved_level)
    root.handlers = saved_handlers


@pytest.fixture
def app(app_factory):
    """Flask test app with the API left open."""
    return app_factory()


@pytest.fixture
def client(app):
    """Flask test client."""
    with app.test_client() as c:
        yield c
