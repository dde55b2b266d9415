"""
Transition engine: the only component that moves participants through the
funnel.

    email_received ──approve──▶ participant `interested`      (interested_participant email)
    pre_screen_completed ──approve──▶ participant `eligible`  (eligible_participant email)
                         ──reject───▶ unchanged               (non_eligible_participant email)
    booking_scheduled ──approve──▶ Booking row                (booking_confirmation email)

Each notification kind has one TransitionHandler, looked up in HANDLERS by
the stored type. Resolving a notification that is no longer pending returns
it unchanged: no writes and no email.

All store writes for one transition share a session and are committed
together; the webhook fires only after the commit, and its failure never
fails the transition.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from study_funnel.domain import (
    BookingData, NotificationStatus, NotificationType, normalize_email,
)
from study_funnel.errors import Invalid, NotFound
from study_funnel.services import bookings, notifications, participants
from study_funnel.services import webhook
from study_funnel.services.booking_email import (
    booking_display_fields, parse_booking_links, to_local_time,
)
from study_funnel.services.survey_format import format_survey_response

logger = logging.getLogger('services.transitions')


def _require_text(**fields):
    """Reject JSON values of the wrong type before they reach the stores."""
    for name, value in fields.items():
        if value is not None and not isinstance(value, str):
            raise Invalid(f'Invalid {name}', details=f'expected a string, got {type(value).__name__}')


@dataclass
class WebhookCall:
    """An email to send once the transition has been committed."""
    template: str
    status: str
    fields: Dict[str, Any] = field(default_factory=dict)


# ── Handlers ──────────────────────────────────────────────────────────────────

class TransitionHandler(ABC):
    """Approve/reject logic for one notification kind."""
    kind: NotificationType

    @abstractmethod
    def approve(self, session, notification) -> Optional[WebhookCall]:
        ...

    def reject(self, session, notification) -> Optional[WebhookCall]:
        notifications.resolve(session, notification, NotificationStatus.REJECTED)
        return None


class EmailReceivedHandler(TransitionHandler):
    kind = NotificationType.EMAIL_RECEIVED

    def approve(self, session, notification):
        participants.get_or_create(session, notification.email)
        notifications.resolve(session, notification, NotificationStatus.APPROVED)
        return WebhookCall(webhook.INTERESTED_PARTICIPANT, NotificationStatus.APPROVED.value)


class PreScreenCompletedHandler(TransitionHandler):
    kind = NotificationType.PRE_SCREEN_COMPLETED

    def approve(self, session, notification):
        notifications.resolve(session, notification, NotificationStatus.APPROVED)
        participants.set_eligible(session, notification.email)
        return WebhookCall(webhook.ELIGIBLE_PARTICIPANT, NotificationStatus.APPROVED.value)

    def reject(self, session, notification):
        notifications.resolve(session, notification, NotificationStatus.REJECTED)
        return WebhookCall(webhook.NON_ELIGIBLE_PARTICIPANT, NotificationStatus.REJECTED.value)


class BookingScheduledHandler(TransitionHandler):
    kind = NotificationType.BOOKING_SCHEDULED

    def approve(self, session, notification):
        data: BookingData = notification.payload
        participant = participants.require_by_email(session, notification.email)
        bookings.create_booking(
            session,
            participant_id=participant.id,
            email=notification.email,
            name=data.name or participant.name,
            booking_time=data.extra.get('bookingTimeUtc') or participant.booking_time or data.booking_time,
            booking_time_local=data.booking_time,
            cancel_link=data.cancel_link,
            reschedule_link=data.reschedule_link,
            survey_link=data.survey_link or participant.survey_link,
        )
        notifications.resolve(session, notification, NotificationStatus.APPROVED)
        return WebhookCall(
            webhook.BOOKING_CONFIRMATION,
            NotificationStatus.APPROVED.value,
            booking_display_fields(data.booking_time),
        )


HANDLERS: Dict[NotificationType, TransitionHandler] = {
    h.kind: h for h in (EmailReceivedHandler(), PreScreenCompletedHandler(), BookingScheduledHandler())
}


# ── Engine ────────────────────────────────────────────────────────────────────

class TransitionEngine:
    """
    Entry points for every funnel event and staff decision.

    Args:
        sink:            WebhookSink (or anything with the same send()).
        catalog_source:  object with get_catalog() → QuestionCatalog,
                         normally the SurveyMonkeyClient.
        local_timezone:  IANA zone bookings are displayed in.
        session_factory: zero-arg callable returning a session; defaults to
                         study_funnel.database.get_session.
    """

    def __init__(self, sink, catalog_source, local_timezone: str = 'America/New_York',
                 session_factory: Callable = None):
        self.sink = sink
        self.catalog_source = catalog_source
        self.local_timezone = local_timezone
        self._session_factory = session_factory

    def _session(self):
        if self._session_factory is not None:
            return self._session_factory()
        from study_funnel.database import get_session
        return get_session()

    def _write(self, work):
        """Run work(session) in one transaction and return its result."""
        session = self._session()
        try:
            result = work(session)
            session.commit()
            return result
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _read(self, work):
        session = self._session()
        try:
            return work(session)
        finally:
            session.close()

    # ── Inbound events ───────────────────────────────────────────────────

    def record_email_received(self, email: str, subject: str = None, body: str = None) -> Dict:
        _require_text(email=email, subject=subject, body=body)
        email = normalize_email(email)
        if not email:
            raise Invalid('Email is required')
        return self._write(
            lambda s: notifications.record_email_received(s, email, subject, body).to_dict()
        )

    def record_pre_screen_completed(self, email: str, name: str, payload: Dict) -> Dict:
        _require_text(email=email, name=name)
        email = normalize_email(email)
        if not email:
            raise Invalid('Email is required')
        return self._write(
            lambda s: notifications.record_pre_screen_completed(
                s, email, name, payload, self.catalog_source.get_catalog,
            ).to_dict()
        )

    def record_booking(self, start_time: str, end_time: str, email: str, body: str) -> Dict:
        """The scheduling tool reported a booking: mark booked, queue it for review."""
        if not (start_time and end_time and email and body):
            raise Invalid('Missing required fields')
        _require_text(startTime=start_time, endTime=end_time, email=email, body=body)
        email = normalize_email(email)

        cancel_link, reschedule_link = parse_booking_links(body)
        logger.info("Parsed booking links for %s: cancel=%r reschedule=%r", email, cancel_link, reschedule_link)
        try:
            booking_utc, booking_local = to_local_time(start_time, self.local_timezone)
        except (ValueError, TypeError) as e:
            raise Invalid('Invalid startTime', details=str(e)) from e

        def work(session):
            participant = participants.book(
                session, email, booking_utc, booking_local, cancel_link, reschedule_link,
            )
            notifications.record_booking_scheduled(session, email, BookingData(
                booking_time=booking_local,
                cancel_link=cancel_link,
                reschedule_link=reschedule_link,
                survey_link=participant.survey_link,
                name=participant.name,
                age=participant.age,
                extra={'bookingTimeUtc': booking_utc},
            ))
            return participant.to_dict()

        return self._write(work)

    # ── Staff decisions ──────────────────────────────────────────────────

    def approve(self, notification_id: int) -> Dict:
        return self._resolve(notification_id, 'approve')

    def reject(self, notification_id: int) -> Dict:
        return self._resolve(notification_id, 'reject')

    def approve_pre_screen(self, notification_id: int) -> Dict:
        return self._resolve(notification_id, 'approve', NotificationType.PRE_SCREEN_COMPLETED)

    def reject_pre_screen(self, notification_id: int) -> Dict:
        return self._resolve(notification_id, 'reject', NotificationType.PRE_SCREEN_COMPLETED)

    def _resolve(self, notification_id, action, expected_kind=None):
        pending_email = []

        def work(session):
            notification = notifications.get_notification(session, notification_id)
            if expected_kind is not None and notification.type != expected_kind.value:
                raise Invalid(
                    f'Notification is not of type {expected_kind.value}',
                    details=f'id={notification_id} type={notification.type}',
                )
            if not notification.is_pending:
                logger.info(
                    "Notification %s already %s, %s skipped",
                    notification_id, notification.status, action,
                )
                return notification.to_dict()

            handler = HANDLERS.get(notification.type)
            if handler is None:
                raise Invalid(f'No transition for notification type {notification.type}')

            call = getattr(handler, action)(session, notification)
            if call is not None:
                pending_email.append((call, notification.email))
            logger.info("Notification %s (%s) %s", notification_id, notification.type, notification.status)
            return notification.to_dict()

        result = self._write(work)

        for call, to_email in pending_email:
            self.sink.send(call.template, to_email, notification_id, call.status, **call.fields)
        return result

    # ── Reads ────────────────────────────────────────────────────────────

    def list_notifications(self) -> List[Dict]:
        return self._read(notifications.list_notifications)

    def list_participants(self) -> List[Dict]:
        return self._read(lambda s: [p.to_dict() for p in participants.list_all(s)])

    def list_eligible(self) -> List[Dict]:
        return self._read(
            lambda s: [p.to_dict() for p in participants.list_eligible_awaiting_booking(s)]
        )

    def list_bookings(self) -> List[Dict]:
        return self._read(bookings.list_bookings)

    def survey_response(self, notification_id: int) -> List[Dict]:
        """Formatted pre-screen answers of the participant behind a notification."""
        def work(session):
            notification = notifications.get_notification(session, notification_id)
            participant = participants.get_by_email(session, notification.email)
            if participant is None or not participant.survey_payload:
                raise NotFound('Survey response data not found', details=notification.email)
            return participant.survey_payload

        payload = self._read(work)
        catalog = self.catalog_source.get_catalog()
        return [a.to_dict() for a in format_survey_response(catalog, payload)]
