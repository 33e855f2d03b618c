"""Service for turning loosely-typed sessions into comparable ones."""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date, datetime

import dateparser
from dateutil.parser import isoparse

from venue_availability.domain.models import NormalizedSession, Record, Session

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})(?::\d{2})?\s*$")
_ISO_DATE_RE = re.compile(r"^\d{4}-?\d{2}-?\d{2}")
_END_OF_DAY = 24 * 60

LEGACY_DEFAULT_START = "00:00"
LEGACY_DEFAULT_END = "23:59"

_DATEPARSER_SETTINGS = {
    "PARSERS": ["custom-formats", "absolute-time"],
    "REQUIRE_PARTS": ["day", "month", "year"],
    "RETURN_AS_TIMEZONE_AWARE": False,
}


def parse_minutes(raw: str | None) -> int | None:
    """Parse ``HH:MM`` into minutes since midnight.

    ``24:00`` is accepted as end-of-day. Returns ``None`` for anything else
    that is not a valid time of day.
    """
    if not raw or not isinstance(raw, str):
        return None
    m = _TIME_RE.match(raw)
    if m is None:
        return None
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours == 24 and minutes == 0:
        return _END_OF_DAY
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def date_key(raw: date | datetime | str | None) -> str | None:
    """Return the ``YYYY-MM-DD`` calendar day of *raw*, as given.

    No timezone conversion happens: ``2025-06-01T23:30:00-05:00`` is keyed
    to ``2025-06-01``.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date().isoformat()
    if isinstance(raw, date):
        return raw.isoformat()
    if not isinstance(raw, str) or not raw.strip():
        return None

    text = raw.strip()
    if _ISO_DATE_RE.match(text):
        try:
            return isoparse(text).date().isoformat()
        except (ValueError, OverflowError):
            return None

    try:
        parsed = dateparser.parse(text, settings=_DATEPARSER_SETTINGS)
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None:
        return None
    return parsed.date().isoformat()


def normalize(session: Session) -> NormalizedSession | None:
    """Canonicalize a session, or return ``None`` if it is incomplete."""
    if not session.venue:
        return None
    day = date_key(session.session_date)
    start = parse_minutes(session.start_time)
    end = parse_minutes(session.end_time)
    if day is None or start is None or end is None:
        return None
    return NormalizedSession(
        venue=session.venue, date_key=day, start_minutes=start, end_minutes=end
    )


def normalize_all(
    sessions: Iterable[Session],
) -> list[tuple[Session, NormalizedSession]]:
    """Return the complete sessions paired with their normalized form.

    Input order is preserved; incomplete sessions are dropped.
    """
    out: list[tuple[Session, NormalizedSession]] = []
    for session in sessions:
        normalized = normalize(session)
        if normalized is not None:
            out.append((session, normalized))
    return out


def record_sessions(record: Record) -> tuple[Session, ...]:
    """Return a record's sessions, synthesizing one for legacy bookings."""
    if record.sessions:
        return record.sessions
    if record.hall and record.event_date:
        return (
            Session(
                venue=record.hall,
                session_date=record.event_date,
                start_time=record.event_start_time or LEGACY_DEFAULT_START,
                end_time=record.event_end_time or LEGACY_DEFAULT_END,
            ),
        )
    return ()
