"""
Booking model: one immutable row per approved booking.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey

from study_funnel.database import Base
from study_funnel.domain import isoformat_utc


def _utcnow():
    return datetime.now(timezone.utc)


class Booking(Base):
    __tablename__ = 'bookings'

    id = Column(Integer, primary_key=True, autoincrement=True)
    participant_id = Column(Integer, ForeignKey('participants.id'), nullable=False, index=True)
    email = Column(Text, nullable=False)
    name = Column(Text, nullable=True)
    booking_time = Column(Text, nullable=False)
    booking_time_local = Column(Text, nullable=True)
    cancel_link = Column(Text, nullable=True)
    reschedule_link = Column(Text, nullable=True)
    survey_link = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self, participant_name=None, participant_email=None):
        return {
            'id': self.id,
            'participantId': self.participant_id,
            'email': self.email,
            'name': self.name,
            'bookingTime': self.booking_time,
            'bookingTimeLocal': self.booking_time_local,
            'cancelLink': self.cancel_link,
            'rescheduleLink': self.reschedule_link,
            'surveyLink': self.survey_link,
            'createdAt': isoformat_utc(self.created_at),
            'participantName': participant_name,
            'participantEmail': participant_email,
        }
