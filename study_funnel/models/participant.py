"""
Participant model: one row per unique email, tracking funnel progress.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Float, Text, DateTime

from study_funnel.database import Base
from study_funnel.domain import ParticipantStatus, decode_json_object, isoformat_utc


def _utcnow():
    return datetime.now(timezone.utc)


class Participant(Base):
    __tablename__ = 'participants'

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, nullable=False, unique=True)   # case-sensitive, pre-trimmed
    status = Column(Text, nullable=False, default=ParticipantStatus.INTERESTED.value)
    name = Column(Text, nullable=True)
    age = Column(Float, nullable=True)
    pre_screen_data = Column(Text, nullable=True)       # raw SurveyMonkey response JSON
    survey_link = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    prescreen_approval_date = Column(DateTime(timezone=True), nullable=True)
    booking_time = Column(Text, nullable=True)          # UTC ISO-8601
    booking_time_local = Column(Text, nullable=True)    # LOCAL_TIMEZONE ISO-8601
    cancel_link = Column(Text, nullable=True)
    reschedule_link = Column(Text, nullable=True)

    @property
    def funnel_status(self) -> ParticipantStatus:
        return ParticipantStatus(self.status)

    @property
    def survey_payload(self):
        return decode_json_object(self.pre_screen_data)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'status': self.status,
            'name': self.name,
            'age': self.age,
            'preScreenData': self.survey_payload or None,
            'surveyLink': self.survey_link,
            'createdAt': isoformat_utc(self.created_at),
            'prescreenApprovalDate': isoformat_utc(self.prescreen_approval_date),
            'bookingTime': self.booking_time,
            'bookingTimeLocal': self.booking_time_local,
            'cancelLink': self.cancel_link,
            'rescheduleLink': self.reschedule_link,
        }
