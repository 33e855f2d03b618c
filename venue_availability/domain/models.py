"""Domain models for the venue availability system."""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date, datetime, timezone
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RecordKind(StrEnum):
    ENQUIRY = "enquiry"
    BOOKING = "booking"


class RecordStatus(StrEnum):
    NEW = "new"
    QUOTATION_SENT = "quotation_sent"
    ONGOING = "ongoing"
    CONVERTED = "converted"
    LOST = "lost"
    BOOKED = "booked"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class Severity(StrEnum):
    BLOCKING = "blocking"
    WARNING = "warning"


class TransitionOutcome(StrEnum):
    ALLOWED = "allowed"
    NEEDS_ACKNOWLEDGEMENT = "needs_acknowledgement"
    REFUSED = "refused"


class TimelineEntryType(StrEnum):
    SAVED = "saved"
    CONFLICT_DETECTED = "conflict_detected"
    WARNINGS_ACKNOWLEDGED = "warnings_acknowledged"
    STATUS_CHANGED = "status_changed"


ENQUIRY_STATUSES = frozenset(
    {
        RecordStatus.NEW,
        RecordStatus.QUOTATION_SENT,
        RecordStatus.ONGOING,
        RecordStatus.CONVERTED,
        RecordStatus.LOST,
        RecordStatus.BOOKED,
        RecordStatus.CLOSED,
    }
)
BOOKING_STATUSES = frozenset(
    {RecordStatus.BOOKED, RecordStatus.CANCELLED, RecordStatus.CLOSED}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Session(BaseModel):
    """A time-boxed occupation of a venue, as supplied by the caller.

    Every field is optional: partially filled sessions are normal while a
    record is being edited and are simply left out of conflict checks.
    """

    model_config = ConfigDict(frozen=True)

    venue: str | None = None
    session_date: date | datetime | str | None = None
    start_time: str | None = None
    end_time: str | None = None
    session_name: str | None = None


class Record(BaseModel):
    """An enquiry or a booking together with the sessions it owns."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    kind: RecordKind
    status: RecordStatus
    client_name: str | None = None
    reference: str | None = None
    sessions: tuple[Session, ...] = ()
    enquiry_id: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)

    # Legacy single-hall bookings predate sessions.
    hall: str | None = None
    event_date: date | datetime | str | None = None
    event_start_time: str | None = None
    event_end_time: str | None = None

    @model_validator(mode="after")
    def check_status_fits_kind(self) -> Record:
        allowed = (
            ENQUIRY_STATUSES if self.kind == RecordKind.ENQUIRY else BOOKING_STATUSES
        )
        if self.status not in allowed:
            raise ValueError(f"{self.status} is not a valid {self.kind} status")
        return self

    @property
    def label(self) -> str:
        return self.client_name or self.reference or self.id


class Candidate(BaseModel):
    """The record under evaluation: its identity and proposed sessions."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    sessions: tuple[Session, ...] = ()
    related_ids: frozenset[str] = frozenset()

    @property
    def excluded_ids(self) -> frozenset[str]:
        if self.id is None:
            return self.related_ids
        return self.related_ids | {self.id}

    @classmethod
    def from_record(
        cls, record: Record, sessions: Iterable[Session] | None = None
    ) -> Candidate:
        related = {record.enquiry_id} if record.enquiry_id else set()
        return cls(
            id=record.id,
            sessions=tuple(record.sessions if sessions is None else sessions),
            related_ids=frozenset(related),
        )


class NormalizedSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    venue: str
    date_key: str
    start_minutes: int
    end_minutes: int


class ConflictDescriptor(BaseModel):
    """One overlapping pair between the candidate and another record."""

    severity: Severity
    candidate_session: Session
    other_session: Session
    other_id: str
    other_kind: RecordKind
    other_status: RecordStatus
    other_label: str
    other_reference: str | None = None
    venue: str
    date: str
    candidate_time: str
    other_time: str


class ClassificationResult(BaseModel):
    blocking: bool = False
    warnings: list[ConflictDescriptor] = Field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.warnings)

    @property
    def blocking_conflicts(self) -> list[ConflictDescriptor]:
        return [c for c in self.warnings if c.severity == Severity.BLOCKING]

    @property
    def warning_conflicts(self) -> list[ConflictDescriptor]:
        return [c for c in self.warnings if c.severity == Severity.WARNING]

    @property
    def conflict_dates(self) -> list[str]:
        return sorted({c.date for c in self.warnings})


class ConflictReport(BaseModel):
    title: str
    blocking: bool
    lines: list[str] = Field(default_factory=list)
    description: str = ""


class WarningAcknowledgement(BaseModel):
    """Single-use token confirming the caller reviewed a warning set."""

    acknowledged_warnings_for: str


class GateDecision(BaseModel):
    outcome: TransitionOutcome
    target_status: RecordStatus
    fingerprint: str | None = None
    bypass_used: bool = False
    verified: bool = True
    message: str | None = None
    classification: ClassificationResult = Field(default_factory=ClassificationResult)
    report: ConflictReport | None = None

    @property
    def allowed(self) -> bool:
        return self.outcome == TransitionOutcome.ALLOWED


class TimelineEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    record_id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    type: TimelineEntryType
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class AvailabilityCheckRequest(BaseModel):
    candidate: Candidate


class AvailabilityCheckResponse(BaseModel):
    classification: ClassificationResult
    report: ConflictReport
    conflict_dates: list[str] = Field(default_factory=list)


class VenueSlot(BaseModel):
    venue: str
    start_time: str
    end_time: str


class TentativeCheckRequest(BaseModel):
    enquiry_id: str | None = None
    tentative_dates: list[date] = Field(default_factory=list)
    venues: list[VenueSlot] = Field(default_factory=list)


class EnquiryCreate(BaseModel):
    client_name: str
    reference: str | None = None
    status: RecordStatus = RecordStatus.NEW
    sessions: list[Session] = Field(default_factory=list)


class BookingCreate(BaseModel):
    client_name: str
    reference: str | None = None
    enquiry_id: str | None = None
    sessions: list[Session] = Field(default_factory=list)
    hall: str | None = None
    event_date: date | None = None
    event_start_time: str | None = None
    event_end_time: str | None = None


class SessionsUpdate(BaseModel):
    sessions: list[Session] = Field(default_factory=list)


class StatusChangeRequest(BaseModel):
    status: RecordStatus
    acknowledgement: WarningAcknowledgement | None = None


class SaveResponse(BaseModel):
    record: Record
    report: ConflictReport | None = None


class StatusChangeResponse(BaseModel):
    record: Record
    decision: GateDecision
