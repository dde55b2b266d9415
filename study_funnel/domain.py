"""
Funnel vocabulary: statuses, notification kinds and their payloads.

Notification payloads are a tagged union keyed by NotificationType. They are
serialised to the schemaless `notifications.data` column only at the storage
boundary (see models/notification.py).
"""
import enum
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

logger = logging.getLogger('domain')


class ParticipantStatus(str, enum.Enum):
    INTERESTED = 'interested'
    PENDING_REVIEW = 'pending_review'
    ELIGIBLE = 'eligible'
    BOOKED = 'booked'

    @property
    def rank(self) -> int:
        return _FUNNEL_ORDER.index(self)

    def is_after(self, other: 'ParticipantStatus') -> bool:
        return self.rank > other.rank


_FUNNEL_ORDER = [
    ParticipantStatus.INTERESTED,
    ParticipantStatus.PENDING_REVIEW,
    ParticipantStatus.ELIGIBLE,
    ParticipantStatus.BOOKED,
]


class NotificationType(str, enum.Enum):
    EMAIL_RECEIVED = 'email_received'
    PRE_SCREEN_COMPLETED = 'pre_screen_completed'
    ELIGIBILITY_CONFIRMED = 'eligibility_confirmed'  # reporting only, never stored
    BOOKING_SCHEDULED = 'booking_scheduled'


class NotificationStatus(str, enum.Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


# ── Notification payloads ────────────────────────────────────────────────────

@dataclass
class PreScreenData:
    """Payload of a pre_screen_completed notification."""
    name: str = ''

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'PreScreenData':
        return cls(name=d.get('name') or '')


@dataclass
class BookingData:
    """Payload of a booking_scheduled notification."""
    booking_time: str = ''
    cancel_link: str = ''
    reschedule_link: str = ''
    survey_link: Optional[str] = None
    name: Optional[str] = None
    age: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = {
            'bookingTime': self.booking_time,
            'cancelLink': self.cancel_link,
            'rescheduleLink': self.reschedule_link,
            'surveyLink': self.survey_link,
            'name': self.name,
            'age': self.age,
        }
        # extras sit alongside the known keys but never overwrite them
        for k, v in self.extra.items():
            d.setdefault(k, v)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'BookingData':
        known = {'bookingTime', 'cancelLink', 'rescheduleLink', 'surveyLink', 'name', 'age'}
        return cls(
            booking_time=d.get('bookingTime') or '',
            cancel_link=d.get('cancelLink') or '',
            reschedule_link=d.get('rescheduleLink') or '',
            survey_link=d.get('surveyLink'),
            name=d.get('name'),
            age=d.get('age'),
            extra={k: v for k, v in d.items() if k not in known},
        )


PAYLOAD_TYPES = {
    NotificationType.PRE_SCREEN_COMPLETED: PreScreenData,
    NotificationType.BOOKING_SCHEDULED: BookingData,
}


def decode_json_object(raw) -> Dict[str, Any]:
    """Decode a stored JSON column; anything malformed becomes {}."""
    if raw is None or raw == '':
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Discarding malformed JSON payload: %.80r", raw)
        return {}
    return value if isinstance(value, dict) else {}


def normalize_email(raw: Optional[str]) -> str:
    """Trim whitespace and trailing semicolons. Case is preserved."""
    if not raw:
        return ''
    return raw.strip().rstrip(';').strip()


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 with an explicit offset. SQLite hands back naive datetimes, which are UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
