"""
SurveyMonkey API client: the pollable survey source.

Both endpoints go through the `surveymonkey` circuit breaker. The survey
details document (question catalog) is fetched once and cached on the client
for the life of the process; a single pre-screen survey is assumed.
"""
import logging
import threading
from typing import Dict, List

import requests

from study_funnel.errors import UpstreamUnavailable
from study_funnel.services.circuit_breaker import SURVEYMONKEY, get_breaker
from study_funnel.services.survey_format import QuestionCatalog

logger = logging.getLogger('services.surveymonkey')


class SurveyMonkeyClient:

    def __init__(self, token: str = None, survey_id: str = None,
                 api_url: str = 'https://api.surveymonkey.ca', timeout: int = 30):
        self.token = token
        self.survey_id = survey_id
        self.api_url = api_url.rstrip('/')
        self.timeout = timeout
        self._catalog = None
        self._catalog_lock = threading.Lock()

    @property
    def configured(self) -> bool:
        return bool(self.token and self.survey_id)

    def _get(self, path: str, params: Dict = None) -> Dict:
        if not self.configured:
            raise UpstreamUnavailable('SurveyMonkey token or survey ID not configured')

        url = f'{self.api_url}/v3/surveys/{self.survey_id}/{path}'
        try:
            resp = get_breaker(SURVEYMONKEY).call(
                requests.get,
                url,
                headers={
                    'Authorization': f'Bearer {self.token}',
                    'Accept': 'application/json',
                },
                params=params,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()
        except Exception as e:
            logger.error("SurveyMonkey request to %s failed: %s", path, e)
            raise UpstreamUnavailable('SurveyMonkey request failed', details=str(e)) from e

    def fetch_completed_responses(self) -> List[Dict]:
        """All completed responses (single page of up to 1000)."""
        body = self._get('responses/bulk', params={'status': 'completed', 'per_page': 1000})
        responses = body.get('data') or []
        logger.info("Fetched %d completed SurveyMonkey responses", len(responses))
        return responses

    def get_catalog(self) -> QuestionCatalog:
        """Question catalog, fetched on first use and then cached."""
        if self._catalog is not None:
            return self._catalog
        with self._catalog_lock:
            if self._catalog is None:
                details = self._get('details')
                self._catalog = QuestionCatalog.from_details(details)
                logger.info("Cached SurveyMonkey catalog (%d questions)", len(self._catalog))
        return self._catalog
