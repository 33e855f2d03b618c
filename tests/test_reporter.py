"""Tests for conflict report formatting."""

from venue_availability.domain.models import (
    Candidate,
    ClassificationResult,
    Record,
    RecordKind,
    RecordStatus,
    Session,
)
from venue_availability.services.conflicts import classify
from venue_availability.services.reporter import (
    BLOCKING_TITLE,
    WARNING_TITLE,
    format_report,
    to_http_conflicts,
)


def _session(start: str, end: str, name: str | None = None) -> Session:
    return Session(
        venue="Hall A",
        session_date="2025-06-01",
        start_time=start,
        end_time=end,
        session_name=name,
    )


def _classification(*statuses: RecordStatus) -> ClassificationResult:
    others = [
        Record(
            kind=RecordKind.BOOKING
            if status == RecordStatus.BOOKED
            else RecordKind.ENQUIRY,
            status=status,
            client_name=f"Client {i}",
            reference=f"REF-{i}",
            sessions=(_session("11:00", "13:00", name="Dinner"),),
        )
        for i, status in enumerate(statuses, start=1)
    ]
    candidate = Candidate(id="cand", sessions=(_session("10:00", "12:00", "Lunch"),))
    return classify(candidate, others)


def test_line_format():
    report = format_report(_classification(RecordStatus.BOOKED))

    assert report.lines == [
        "2025-06-01 • Hall A • 10:00-12:00 ↔ 11:00-13:00 (Client 1 - booked)"
    ]


def test_blocking_title():
    report = format_report(_classification(RecordStatus.NEW, RecordStatus.BOOKED))

    assert report.title == BLOCKING_TITLE
    assert report.blocking is True
    assert len(report.lines) == 2
    assert "cannot proceed" in report.description


def test_warning_title():
    report = format_report(_classification(RecordStatus.QUOTATION_SENT))

    assert report.title == WARNING_TITLE
    assert report.blocking is False
    assert report.lines[0].endswith("(Client 1 - quotation_sent)")
    assert "may still proceed" in report.description


def test_empty_classification_has_no_lines():
    report = format_report(ClassificationResult())

    assert report.blocking is False
    assert report.lines == []
    assert report.description == ""


def test_custom_date_format():
    report = format_report(_classification(RecordStatus.BOOKED), "%d/%m/%Y")
    assert report.lines[0].startswith("01/06/2025 • Hall A")


def test_http_conflicts_list_only_blocking_by_default():
    classification = _classification(RecordStatus.NEW, RecordStatus.BOOKED)

    conflicts = to_http_conflicts(classification)

    assert len(conflicts) == 1
    (conflict,) = conflicts
    assert conflict["venue"] == "Hall A"
    assert conflict["date"] == "2025-06-01"
    assert conflict["existingBooking"]["clientName"] == "Client 2"
    assert conflict["existingBooking"]["reference"] == "REF-2"
    assert conflict["existingBooking"]["sessionName"] == "Dinner"
    assert conflict["existingBooking"]["startTime"] == "11:00"
    assert conflict["conflictingSession"] == {
        "sessionName": "Lunch",
        "startTime": "10:00",
        "endTime": "12:00",
    }


def test_http_conflicts_can_include_warnings():
    classification = _classification(RecordStatus.NEW, RecordStatus.BOOKED)

    conflicts = to_http_conflicts(classification, include_warnings=True)

    assert [c["severity"] for c in conflicts] == ["warning", "blocking"]
