"""
Helpers for the scheduling tool's booking email and booking times.
"""
import logging
import re
from datetime import datetime, timezone
from typing import Tuple
from zoneinfo import ZoneInfo

logger = logging.getLogger('services.booking_email')

# The scheduling tool renders "Cancel: <a href=...>" / "Reschedule: <a href=...>"
_CANCEL_LINK = re.compile(r'''Cancel:[^<]*<a [^>]*href=["']([^"']+)["']''', re.IGNORECASE)
_RESCHEDULE_LINK = re.compile(r'''Reschedule:[^<]*<a [^>]*href=["']([^"']+)["']''', re.IGNORECASE)


def parse_booking_links(body: str) -> Tuple[str, str]:
    """(cancel_link, reschedule_link) from the email body; '' when absent."""
    body = body or ''
    cancel = _CANCEL_LINK.search(body)
    reschedule = _RESCHEDULE_LINK.search(body)
    return (
        cancel.group(1) if cancel else '',
        reschedule.group(1) if reschedule else '',
    )


def _parse_iso(value: str) -> datetime:
    # fromisoformat() only accepts a trailing "Z" from 3.11 on
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    return datetime.fromisoformat(value)


def to_local_time(start_time: str, tz_name: str) -> Tuple[str, str]:
    """
    Convert a booking start time to (utc_iso, local_iso).

    Timestamps without an offset are taken as UTC. Raises ValueError on
    unparseable input.
    """
    dt = _parse_iso(start_time.strip())
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc)
    dt_local = dt_utc.astimezone(ZoneInfo(tz_name))
    return dt_utc.isoformat(), dt_local.isoformat()


def booking_display_fields(booking_time: str) -> dict:
    """
    Human-readable date parts for the confirmation email, in the booking's
    own offset: {'booking_date': 'June 13', 'booking_day': 'Friday',
    'booking_time': '01:30pm'}. Empty strings when the time can't be parsed.
    """
    fields = {'booking_date': '', 'booking_day': '', 'booking_time': ''}
    if not booking_time:
        return fields
    try:
        dt = _parse_iso(booking_time)
    except ValueError:
        logger.error("Could not parse booking time %r", booking_time)
        return fields
    fields['booking_date'] = f'{dt.strftime("%B")} {dt.day}'
    fields['booking_day'] = dt.strftime('%A')
    fields['booking_time'] = dt.strftime('%I:%M%p').lower()
    return fields
