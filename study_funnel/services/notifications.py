"""
Notification store: the log of funnel events awaiting staff review.

Functions take the caller's session and flush; the caller commits.
"""
import logging
from typing import Any, Callable, Dict, List

from study_funnel.domain import (
    BookingData, NotificationStatus, NotificationType, PreScreenData,
)
from study_funnel.errors import NotFound
from study_funnel.models.notification import Notification
from study_funnel.models.participant import Participant
from study_funnel.services import participants
from study_funnel.services.survey_format import QuestionCatalog, format_survey_response

logger = logging.getLogger('services.notifications')


def get_notification(session, notification_id: int) -> Notification:
    notification = session.get(Notification, notification_id)
    if notification is None:
        raise NotFound('Notification not found', details=f'id={notification_id}')
    return notification


def find_by_type(session, email: str, kind: NotificationType):
    return (
        session.query(Notification)
        .filter_by(type=kind.value, email=email)
        .order_by(Notification.id)
        .first()
    )


def record_email_received(session, email: str, subject: str = None, body: str = None) -> Notification:
    """One new notification per inbound email, no dedup."""
    notification = Notification(
        type=NotificationType.EMAIL_RECEIVED.value,
        email=email,
        status=NotificationStatus.PENDING.value,
        email_subject=subject or None,
        email_body=body or None,
    )
    session.add(notification)
    session.flush()
    logger.info("Recorded email_received notification %s for %s", notification.id, email)
    return notification


def record_pre_screen_completed(
    session, email: str, name: str, payload: Dict[str, Any],
    load_catalog: Callable[[], QuestionCatalog],
) -> Notification:
    """
    Record a completed pre-screen survey.

    Idempotent per email: if a pre_screen_completed notification already
    exists (in any status) it is returned unchanged and the participant is
    not touched. The question catalog is only loaded when a new
    notification is actually recorded.
    """
    existing = find_by_type(session, email, NotificationType.PRE_SCREEN_COMPLETED)
    if existing is not None:
        logger.info("pre_screen_completed notification already exists for %s (id=%s)", email, existing.id)
        return existing

    formatted = format_survey_response(load_catalog(), payload) if payload else []
    participants.upsert_pending_review(session, email, name, payload, formatted)

    notification = Notification(
        type=NotificationType.PRE_SCREEN_COMPLETED.value,
        email=email,
        status=NotificationStatus.PENDING.value,
    )
    notification.payload = PreScreenData(name=name or '')
    session.add(notification)
    session.flush()
    logger.info("Recorded pre_screen_completed notification %s for %s", notification.id, email)
    return notification


def record_booking_scheduled(session, email: str, data: BookingData) -> Notification:
    """One new notification per booking. A participant may rebook."""
    notification = Notification(
        type=NotificationType.BOOKING_SCHEDULED.value,
        email=email,
        status=NotificationStatus.PENDING.value,
    )
    notification.payload = data
    session.add(notification)
    session.flush()
    logger.info("Recorded booking_scheduled notification %s for %s", notification.id, email)
    return notification


def list_notifications(session) -> List[Dict[str, Any]]:
    """All notifications newest first, with the participant's approval date."""
    rows = (
        session.query(Notification, Participant.prescreen_approval_date)
        .outerjoin(Participant, Participant.email == Notification.email)
        .order_by(Notification.timestamp.desc(), Notification.id.desc())
        .all()
    )
    return [n.to_dict(prescreen_approval_date=approved_at) for n, approved_at in rows]


def resolve(session, notification: Notification, status: NotificationStatus) -> Notification:
    notification.status = status.value
    session.flush()
    return notification
