"""
Booking store: immutable records of approved bookings.
"""
import logging
from typing import Any, Dict, List

from study_funnel.errors import NotFound
from study_funnel.models.booking import Booking
from study_funnel.models.participant import Participant

logger = logging.getLogger('services.bookings')


def create_booking(
    session, participant_id: int, email: str, name: str, booking_time: str,
    booking_time_local: str = None, cancel_link: str = None,
    reschedule_link: str = None, survey_link: str = None,
) -> Booking:
    if session.get(Participant, participant_id) is None:
        raise NotFound('Participant not found', details=f'id={participant_id}')

    booking = Booking(
        participant_id=participant_id,
        email=email,
        name=name,
        booking_time=booking_time,
        booking_time_local=booking_time_local,
        cancel_link=cancel_link,
        reschedule_link=reschedule_link,
        survey_link=survey_link,
    )
    session.add(booking)
    session.flush()
    logger.info("Created booking %s for participant %s at %s", booking.id, participant_id, booking_time)
    return booking


def list_bookings(session) -> List[Dict[str, Any]]:
    """Bookings with the owner's current name/email, latest booking time first."""
    rows = (
        session.query(Booking, Participant.name, Participant.email)
        .outerjoin(Participant, Participant.id == Booking.participant_id)
        .order_by(Booking.booking_time.desc(), Booking.id.desc())
        .all()
    )
    return [
        b.to_dict(participant_name=name, participant_email=email)
        for b, name, email in rows
    ]
