"""
Notification model: one row per funnel event, each with its own
pending → approved/rejected lifecycle.

Rows are never deleted. `data` is stored as JSON text; the typed payload is
exposed through `payload` (see domain.PAYLOAD_TYPES).
"""
import json
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Text, DateTime, Index

from study_funnel.database import Base
from study_funnel.domain import (
    NotificationStatus, NotificationType, PAYLOAD_TYPES, decode_json_object, isoformat_utc,
)


def _utcnow():
    return datetime.now(timezone.utc)


class Notification(Base):
    __tablename__ = 'notifications'

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    status = Column(Text, nullable=False, default=NotificationStatus.PENDING.value)
    email_subject = Column(Text, nullable=True)   # email_received only
    email_body = Column(Text, nullable=True)      # email_received only
    data = Column(Text, nullable=True)

    __table_args__ = (
        Index('ix_notifications_type_email', 'type', 'email'),
    )

    @property
    def kind(self) -> NotificationType:
        return NotificationType(self.type)

    @property
    def is_pending(self) -> bool:
        return self.status == NotificationStatus.PENDING.value

    @property
    def data_dict(self):
        return decode_json_object(self.data)

    @property
    def payload(self):
        """Typed payload for kinds that carry one, else None."""
        payload_cls = PAYLOAD_TYPES.get(self.kind)
        if payload_cls is None:
            return None
        return payload_cls.from_dict(self.data_dict)

    @payload.setter
    def payload(self, value):
        self.data = json.dumps(value.to_dict()) if value is not None else None

    def to_dict(self, prescreen_approval_date=None):
        d = {
            'id': self.id,
            'type': self.type,
            'email': self.email,
            'timestamp': isoformat_utc(self.timestamp),
            'status': self.status,
            'emailSubject': self.email_subject,
            'emailBody': self.email_body,
            'data': self.data_dict,
        }
        if prescreen_approval_date is not None:
            d['prescreenApprovalDate'] = isoformat_utc(prescreen_approval_date)
        return d
