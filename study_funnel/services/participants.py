"""
Participant store.

Every function takes the caller's session and only flushes; the caller owns
the transaction. Status moves forward through the funnel only, and a
populated survey link or pre-screen payload is never replaced by an empty
value.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from study_funnel.domain import ParticipantStatus
from study_funnel.errors import NotFound
from study_funnel.models.participant import Participant
from study_funnel.services.survey_format import FormattedAnswer, extract_name_and_age

logger = logging.getLogger('services.participants')


def get_by_email(session, email: str) -> Optional[Participant]:
    return session.query(Participant).filter_by(email=email).first()


def require_by_email(session, email: str) -> Participant:
    participant = get_by_email(session, email)
    if participant is None:
        raise NotFound('Participant not found', details=email)
    return participant


def advance_status(participant: Participant, target: ParticipantStatus) -> bool:
    """Move to `target` if it lies ahead in the funnel. Returns True if moved."""
    if target.is_after(participant.funnel_status):
        participant.status = target.value
        return True
    if target != participant.funnel_status:
        logger.info(
            "Participant %s stays %s (refusing to move back to %s)",
            participant.email, participant.status, target.value,
        )
    return False


def get_or_create(session, email: str) -> Participant:
    """Existing participant unchanged, or a new `interested` one."""
    participant = get_by_email(session, email)
    if participant is not None:
        logger.info("Participant %s already exists (status=%s)", email, participant.status)
        return participant

    participant = Participant(email=email, status=ParticipantStatus.INTERESTED.value)
    session.add(participant)
    session.flush()
    logger.info("Created participant %s (id=%s)", email, participant.id)
    return participant


def upsert_pending_review(
    session, email: str, name: str, payload: Dict[str, Any],
    formatted: List[FormattedAnswer],
) -> Participant:
    """Record a completed pre-screen survey for `email`."""
    full_name, age = extract_name_and_age(formatted, fallback_name=name)
    survey_link = (payload or {}).get('analyze_url') or None
    raw_payload = json.dumps(payload) if payload else None

    participant = get_by_email(session, email)
    if participant is None:
        participant = Participant(
            email=email,
            status=ParticipantStatus.PENDING_REVIEW.value,
            name=full_name,
            age=age,
            pre_screen_data=raw_payload,
            survey_link=survey_link,
        )
        session.add(participant)
        session.flush()
        logger.info("Created pending_review participant %s (id=%s)", email, participant.id)
        return participant

    advance_status(participant, ParticipantStatus.PENDING_REVIEW)
    participant.name = full_name
    participant.age = age
    participant.pre_screen_data = raw_payload or participant.pre_screen_data
    participant.survey_link = survey_link or participant.survey_link
    session.flush()
    logger.info("Updated participant %s with pre-screen data (status=%s)", email, participant.status)
    return participant


def set_eligible(session, email: str) -> Optional[Participant]:
    """Mark eligible and stamp the approval date. Missing participant is logged."""
    participant = get_by_email(session, email)
    if participant is None:
        logger.warning("No participant %s to mark eligible", email)
        return None

    if advance_status(participant, ParticipantStatus.ELIGIBLE):
        participant.prescreen_approval_date = datetime.now(timezone.utc)
    session.flush()
    return participant


def book(
    session, email: str, booking_time_utc: str, booking_time_local: str,
    cancel_link: str, reschedule_link: str,
) -> Participant:
    """Record a scheduled booking on the participant."""
    participant = require_by_email(session, email)
    advance_status(participant, ParticipantStatus.BOOKED)
    participant.booking_time = booking_time_utc
    participant.booking_time_local = booking_time_local
    participant.cancel_link = cancel_link
    participant.reschedule_link = reschedule_link
    session.flush()
    logger.info("Participant %s booked for %s", email, booking_time_local)
    return participant


def list_eligible_awaiting_booking(session) -> List[Participant]:
    return (
        session.query(Participant)
        .filter(Participant.status == ParticipantStatus.ELIGIBLE.value)
        .filter(Participant.booking_time.is_(None))
        .order_by(Participant.prescreen_approval_date.desc())
        .all()
    )


def list_all(session) -> List[Participant]:
    return (
        session.query(Participant)
        .order_by(Participant.created_at.desc(), Participant.id.desc())
        .all()
    )
