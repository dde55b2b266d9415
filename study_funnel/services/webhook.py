"""
Power Automate webhook: outbound participant emails.

Delivery is best effort: failures are logged and never raised, so a webhook
outage can not undo or block a state change that has already been committed.
"""
import logging
from datetime import datetime, timezone

import requests

from study_funnel.services.circuit_breaker import WEBHOOK, get_breaker

logger = logging.getLogger('services.webhook')

# Templates understood by the Power Automate flow
INTERESTED_PARTICIPANT = 'interested_participant'
ELIGIBLE_PARTICIPANT = 'eligible_participant'
NON_ELIGIBLE_PARTICIPANT = 'non_eligible_participant'
BOOKING_CONFIRMATION = 'booking_confirmation'


class WebhookSink:
    """Fire-and-forget sink for funnel emails."""

    def __init__(self, url=None, timeout=10):
        self.url = url
        self.timeout = timeout

    def send(self, template, to_email, notification_id, status, **fields):
        """POST one templated email request. Returns True on a 2xx response."""
        if not self.url:
            logger.warning("Webhook URL not configured, %s email to %s skipped", template, to_email)
            return False

        payload = {
            'to_email': to_email,
            'notificationId': notification_id,
            'status': status,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'template': template,
        }
        payload.update(fields)

        try:
            response = get_breaker(WEBHOOK).call(
                requests.post, self.url, json=payload, timeout=self.timeout,
            )
        except Exception:
            logger.error("Failed to send %s email for notification %s", template, notification_id, exc_info=True)
            return False

        if not response.ok:
            logger.error(
                "Webhook rejected %s email for notification %s: %d %s",
                template, notification_id, response.status_code, response.text[:200],
            )
            return False

        logger.info("Sent %s email for notification %s", template, notification_id)
        return True
