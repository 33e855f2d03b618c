"""Service for detecting and classifying venue double-bookings."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from venue_availability.domain.models import (
    Candidate,
    ClassificationResult,
    ConflictDescriptor,
    NormalizedSession,
    Record,
    RecordStatus,
    Session,
    Severity,
    VenueSlot,
)
from venue_availability.services.normalizer import normalize_all, record_sessions
from venue_availability.services.overlap import overlaps

NON_COMPETING_STATUSES = frozenset(
    {RecordStatus.LOST, RecordStatus.CLOSED, RecordStatus.CANCELLED}
)

_SEVERITY_BY_STATUS = {
    RecordStatus.CONVERTED: Severity.BLOCKING,
    RecordStatus.BOOKED: Severity.BLOCKING,
    RecordStatus.NEW: Severity.WARNING,
    RecordStatus.ONGOING: Severity.WARNING,
    RecordStatus.QUOTATION_SENT: Severity.WARNING,
}


def severity_for(status: RecordStatus) -> Severity | None:
    """Return the severity an overlap with a record in *status* carries.

    ``None`` means the record does not compete for the venue at all.
    """
    if status in NON_COMPETING_STATUSES:
        return None
    return _SEVERITY_BY_STATUS.get(status)


def _time_range(n: NormalizedSession) -> str:
    return f"{_hhmm(n.start_minutes)}-{_hhmm(n.end_minutes)}"


def _hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def classify(candidate: Candidate, others: Iterable[Record]) -> ClassificationResult:
    """Find every overlap between *candidate* and *others* and label it.

    Conflicts are emitted in input order: others first, then candidate
    sessions, then the other record's sessions. ``blocking`` is True when at
    least one conflict is against a converted or booked record.
    """
    candidate_sessions = normalize_all(candidate.sessions)
    if not candidate_sessions:
        return ClassificationResult()

    excluded = candidate.excluded_ids
    conflicts: list[ConflictDescriptor] = []

    for other in others:
        if other.id in excluded:
            continue
        if candidate.id is not None and other.enquiry_id == candidate.id:
            continue
        severity = severity_for(other.status)
        if severity is None:
            continue

        other_sessions = normalize_all(record_sessions(other))
        for cand_raw, cand in candidate_sessions:
            for other_raw, theirs in other_sessions:
                if not overlaps(cand, theirs):
                    continue
                conflicts.append(
                    ConflictDescriptor(
                        severity=severity,
                        candidate_session=cand_raw,
                        other_session=other_raw,
                        other_id=other.id,
                        other_kind=other.kind,
                        other_status=other.status,
                        other_label=other.label,
                        other_reference=other.reference,
                        venue=cand.venue,
                        date=cand.date_key,
                        candidate_time=_time_range(cand),
                        other_time=_time_range(theirs),
                    )
                )

    return ClassificationResult(
        blocking=any(c.severity == Severity.BLOCKING for c in conflicts),
        warnings=conflicts,
    )


def check_candidate(
    candidate: Candidate, others: Iterable[Record]
) -> ClassificationResult:
    """Single entry point used by every workflow that books venue time."""
    return classify(candidate, others)


def expand_tentative(
    tentative_dates: Iterable[date], venues: Iterable[VenueSlot]
) -> tuple[Session, ...]:
    """Build one session per (tentative date, venue slot) combination."""
    slots = list(venues)
    return tuple(
        Session(
            venue=slot.venue,
            session_date=day,
            start_time=slot.start_time,
            end_time=slot.end_time,
        )
        for day in tentative_dates
        for slot in slots
    )
