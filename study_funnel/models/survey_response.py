"""
SurveyResponse model: provider response ids the poller has already handled.

Replaces an in-process seen-set so restarts neither replay nor miss responses.
"""
from sqlalchemy import Column, Text, DateTime
from sqlalchemy.sql import func

from study_funnel.database import Base


class SurveyResponse(Base):
    __tablename__ = 'survey_responses'

    response_id = Column(Text, primary_key=True)
    email = Column(Text, nullable=True)   # None when no email could be extracted
    processed_at = Column(DateTime(timezone=True), server_default=func.now())
