"""Tests for the session normalizer."""

from datetime import date, datetime

import pytest

from venue_availability.domain.models import (
    NormalizedSession,
    Record,
    RecordKind,
    RecordStatus,
    Session,
)
from venue_availability.services.normalizer import (
    date_key,
    normalize,
    normalize_all,
    parse_minutes,
    record_sessions,
)


# ---------------------------------------------------------------------------
# Times
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("00:00", 0),
        ("10:00", 600),
        ("9:30", 570),
        ("09:30:00", 570),
        ("23:59", 1439),
        ("24:00", 1440),
    ],
)
def test_parse_minutes_valid(raw, expected):
    assert parse_minutes(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "10", "10am", "25:00", "10:60", "24:30"])
def test_parse_minutes_invalid(raw):
    assert parse_minutes(raw) is None


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def test_date_key_from_date_and_datetime():
    assert date_key(date(2025, 6, 1)) == "2025-06-01"
    assert date_key(datetime(2025, 6, 1, 23, 30)) == "2025-06-01"


def test_date_key_from_iso_strings_keeps_calendar_day():
    """The day is taken as written, with no timezone conversion."""
    assert date_key("2025-06-01") == "2025-06-01"
    assert date_key("2025-06-01T00:00:00.000Z") == "2025-06-01"
    assert date_key("2025-06-01T23:30:00-05:00") == "2025-06-01"


def test_date_key_from_locale_string():
    assert date_key("1 June 2025") == "2025-06-01"


@pytest.mark.parametrize("raw", [None, "", "   ", "not a date", "2025-13-45"])
def test_date_key_unparseable(raw):
    assert date_key(raw) is None


# ---------------------------------------------------------------------------
# normalize / normalize_all
# ---------------------------------------------------------------------------


def test_normalize_complete_session():
    session = Session(
        venue="Hall A", session_date="2025-06-01", start_time="10:00", end_time="12:00"
    )
    assert normalize(session) == NormalizedSession(
        venue="Hall A", date_key="2025-06-01", start_minutes=600, end_minutes=720
    )


@pytest.mark.parametrize(
    "session",
    [
        Session(session_date="2025-06-01", start_time="10:00", end_time="12:00"),
        Session(venue="Hall A", start_time="10:00", end_time="12:00"),
        Session(venue="Hall A", session_date="2025-06-01", end_time="12:00"),
        Session(venue="Hall A", session_date="2025-06-01", start_time="10:00"),
        Session(
            venue="Hall A", session_date="someday", start_time="10:00", end_time="12:00"
        ),
        Session(
            venue="Hall A", session_date="2025-06-01", start_time="10:00", end_time="x"
        ),
    ],
)
def test_normalize_incomplete_session_returns_none(session):
    assert normalize(session) is None


def test_normalize_all_drops_incomplete_and_keeps_order():
    first = Session(
        venue="Hall B", session_date="2025-06-02", start_time="08:00", end_time="09:00"
    )
    broken = Session(venue="Hall A", session_date="2025-06-01", start_time="10:00")
    last = Session(
        venue="Hall A", session_date="2025-06-01", start_time="10:00", end_time="11:00"
    )

    result = normalize_all([first, broken, last])

    assert [raw for raw, _ in result] == [first, last]
    assert result[0][1].venue == "Hall B"


def test_normalize_does_not_mutate_session():
    session = Session(
        venue="Hall A", session_date="2025-06-01", start_time="10:00", end_time="12:00"
    )
    before = session.model_dump()
    normalize(session)
    assert session.model_dump() == before


# ---------------------------------------------------------------------------
# Legacy bookings
# ---------------------------------------------------------------------------


def test_record_sessions_prefers_real_sessions():
    session = Session(
        venue="Hall A", session_date="2025-06-01", start_time="10:00", end_time="12:00"
    )
    record = Record(
        kind=RecordKind.BOOKING,
        status=RecordStatus.BOOKED,
        sessions=(session,),
        hall="Hall B",
        event_date="2025-06-01",
    )
    assert record_sessions(record) == (session,)


def test_record_sessions_synthesizes_whole_day_for_legacy_booking():
    record = Record(
        kind=RecordKind.BOOKING,
        status=RecordStatus.BOOKED,
        hall="Rooftop Terrace",
        event_date=date(2025, 6, 1),
    )

    (session,) = record_sessions(record)

    assert session.venue == "Rooftop Terrace"
    assert session.start_time == "00:00"
    assert session.end_time == "23:59"


def test_record_sessions_empty_without_hall():
    record = Record(kind=RecordKind.ENQUIRY, status=RecordStatus.NEW)
    assert record_sessions(record) == ()
