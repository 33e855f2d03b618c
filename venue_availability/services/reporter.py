"""Service for rendering classified conflicts for people and HTTP clients."""

from __future__ import annotations

from datetime import date

from venue_availability.domain.models import (
    ClassificationResult,
    ConflictDescriptor,
    ConflictReport,
)

DEFAULT_DATE_FORMAT = "%Y-%m-%d"

BLOCKING_TITLE = "Venue Collision Detected"
WARNING_TITLE = "Venue Collision Warning"

BLOCKING_DESCRIPTION = (
    "Another record is already Converted/Booked for the same venue, date and "
    "time. You cannot proceed."
)
WARNING_DESCRIPTION = (
    "Another enquiry exists for the same venue, date and time "
    "(New/Ongoing/Quotation Sent). You may still proceed."
)


def format_line(
    conflict: ConflictDescriptor, date_format: str = DEFAULT_DATE_FORMAT
) -> str:
    day = date.fromisoformat(conflict.date).strftime(date_format)
    return (
        f"{day} • {conflict.venue} • {conflict.candidate_time} ↔ "
        f"{conflict.other_time} ({conflict.other_label} - {conflict.other_status})"
    )


def format_report(
    classification: ClassificationResult, date_format: str = DEFAULT_DATE_FORMAT
) -> ConflictReport:
    """Summarize a classification as a title plus one line per conflict."""
    if classification.blocking:
        title, description = BLOCKING_TITLE, BLOCKING_DESCRIPTION
    else:
        title, description = WARNING_TITLE, WARNING_DESCRIPTION
    return ConflictReport(
        title=title,
        blocking=classification.blocking,
        lines=[format_line(c, date_format) for c in classification.warnings],
        description=description if classification.has_conflicts else "",
    )


def to_http_conflicts(
    classification: ClassificationResult, include_warnings: bool = False
) -> list[dict]:
    """Build the ``conflicts`` list returned with an HTTP 409.

    Only blocking conflicts are listed unless *include_warnings* is set.
    """
    source = (
        classification.warnings
        if include_warnings
        else classification.blocking_conflicts
    )
    return [
        {
            "venue": c.venue,
            "date": c.date,
            "severity": c.severity.value,
            "existingBooking": {
                "id": c.other_id,
                "kind": c.other_kind.value,
                "reference": c.other_reference,
                "clientName": c.other_label,
                "status": c.other_status.value,
                "sessionName": c.other_session.session_name,
                "startTime": c.other_session.start_time,
                "endTime": c.other_session.end_time,
            },
            "conflictingSession": {
                "sessionName": c.candidate_session.session_name,
                "startTime": c.candidate_session.start_time,
                "endTime": c.candidate_session.end_time,
            },
        }
        for c in source
    ]
