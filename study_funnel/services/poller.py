"""
Survey poller: turns completed SurveyMonkey responses into
pre_screen_completed notifications.

Handled response ids are stored in `survey_responses`, so a response is
processed once across restarts. Responses without an email address are
recorded too (they would never yield one). A response whose processing
raised is left unrecorded and retried on the next poll.
"""
import logging
from typing import Any, Callable, Dict, Tuple

from study_funnel.domain import normalize_email
from study_funnel.errors import UpstreamUnavailable
from study_funnel.models.survey_response import SurveyResponse

logger = logging.getLogger('services.poller')


def extract_contact(response: Dict[str, Any]) -> Tuple[str, str]:
    """(email, name): first text answer with an '@', first text answer without."""
    email = name = ''
    for page in response.get('pages') or []:
        for question in page.get('questions') or []:
            for answer in question.get('answers') or []:
                text = answer.get('text')
                if not text:
                    continue
                if not email and '@' in text:
                    email = normalize_email(text)
                if not name and '@' not in text:
                    name = text
    return email, name


class SurveyPoller:

    def __init__(self, source, engine, session_factory: Callable = None):
        self.source = source
        self.engine = engine
        self._session_factory = session_factory

    def _session(self):
        if self._session_factory is not None:
            return self._session_factory()
        from study_funnel.database import get_session
        return get_session()

    def _already_processed(self, response_id) -> bool:
        session = self._session()
        try:
            return session.get(SurveyResponse, response_id) is not None
        finally:
            session.close()

    def _mark_processed(self, response_id, email):
        session = self._session()
        try:
            session.merge(SurveyResponse(response_id=response_id, email=email or None))
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def poll(self) -> Dict[str, Any]:
        """One polling pass. Never raises; returns counters for logging/API."""
        summary = {'fetched': 0, 'processed': 0, 'skipped': 0, 'failed': 0}
        try:
            responses = self.source.fetch_completed_responses()
        except UpstreamUnavailable as e:
            logger.error("Survey poll aborted: %s", e)
            summary['error'] = e.message
            return summary

        summary['fetched'] = len(responses)
        for response in responses:
            response_id = response.get('id')
            if not response_id or response.get('response_status') != 'completed':
                continue
            try:
                if self._already_processed(response_id):
                    continue

                email, name = extract_contact(response)
                if not email:
                    logger.warning("Could not extract email from survey response %s", response_id)
                    self._mark_processed(response_id, None)
                    summary['skipped'] += 1
                    continue

                self.engine.record_pre_screen_completed(email, name, response)
                self._mark_processed(response_id, email)
                summary['processed'] += 1
                logger.info("Processed survey response %s for %s", response_id, email)
            except Exception:
                summary['failed'] += 1
                logger.error("Failed to process survey response %s", response_id, exc_info=True)

        logger.info(
            "Survey poll: %d fetched, %d processed, %d without email, %d failed",
            summary['fetched'], summary['processed'], summary['skipped'], summary['failed'],
        )
        return summary
