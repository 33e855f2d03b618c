"""FastAPI application — entry point for the venue availability service."""

from __future__ import annotations

import logging
import threading
import time

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from venue_availability.config import settings
from venue_availability.domain.bus import EventBus
from venue_availability.domain.errors import VenueConflictError
from venue_availability.domain.events import (
    ConflictDetected,
    RecordSaved,
    StatusChanged,
    WarningsAcknowledged,
)
from venue_availability.domain.handlers import HandlerRegistry
from venue_availability.domain.models import (
    BOOKING_STATUSES,
    ENQUIRY_STATUSES,
    AvailabilityCheckRequest,
    AvailabilityCheckResponse,
    BookingCreate,
    Candidate,
    ClassificationResult,
    EnquiryCreate,
    GateDecision,
    Record,
    RecordKind,
    RecordStatus,
    SaveResponse,
    SessionsUpdate,
    StatusChangeRequest,
    StatusChangeResponse,
    TentativeCheckRequest,
    TimelineEntry,
    TransitionOutcome,
)
from venue_availability.logging_config import setup_logging
from venue_availability.repos.memory import (
    BookingRepository,
    EnquiryRepository,
    RecordRepository,
    RecordSnapshot,
    TimelineRepository,
    seed_sample_data,
)
from venue_availability.services.conflicts import check_candidate, expand_tentative
from venue_availability.services.gate import check_transition
from venue_availability.services.normalizer import record_sessions
from venue_availability.services.reporter import format_report, to_http_conflicts

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Venue Availability Service")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
enquiry_repo = EnquiryRepository()
booking_repo = BookingRepository()
timeline_repo = TimelineRepository()
record_snapshot = RecordSnapshot(enquiry_repo, booking_repo)

# Held from the conflict check until the write lands.
write_lock = threading.Lock()

handler_registry = HandlerRegistry(bus=event_bus, timeline_repo=timeline_repo)

if settings.SEED_SAMPLE_DATA:
    seed_sample_data(enquiry_repo, booking_repo)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    try:
        response = await call_next(request)
        ms = int((time.time() - start) * 1000)
        logger.info(
            "%s %s -> %s (%dms)",
            request.method,
            request.url.path,
            response.status_code,
            ms,
        )
        return response
    except Exception:
        ms = int((time.time() - start) * 1000)
        logger.exception(
            "Unhandled error %s %s (%dms)", request.method, request.url.path, ms
        )
        raise


@app.exception_handler(VenueConflictError)
async def venue_conflict_handler(request: Request, exc: VenueConflictError):
    return JSONResponse(status_code=409, content=exc.payload)


# ── Helpers ───────────────────────────────────────────────────────────


def _get_or_404(repo: RecordRepository, record_id: str, label: str) -> Record:
    record = repo.get(record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return record


def _conflict_payload(
    classification: ClassificationResult, message: str, details: str
) -> dict:
    report = format_report(classification, settings.REPORT_DATE_FORMAT)
    return {
        "message": message,
        "details": details,
        "blocking": classification.blocking,
        "conflicts": to_http_conflicts(
            classification, include_warnings=not classification.blocking
        ),
        "report": report.model_dump(mode="json"),
    }


def _guard_sessions(record: Record, action: str) -> ClassificationResult:
    """Check *record*'s sessions and refuse the save on a blocking conflict.

    Warning-only conflicts never stop a save; they are returned so the
    caller can surface them.
    """
    candidate = Candidate.from_record(record, record_sessions(record))
    classification = check_candidate(candidate, record_snapshot())
    if classification.has_conflicts:
        event_bus.publish(
            ConflictDetected(
                record_id=record.id,
                blocking=classification.blocking,
                conflicting_record_ids=sorted(
                    {c.other_id for c in classification.warnings}
                ),
                refused=classification.blocking,
            )
        )
    if classification.blocking:
        raise VenueConflictError(
            _conflict_payload(
                classification,
                message=(
                    "Venue collision with existing converted/booked record. "
                    f"{action} blocked."
                ),
                details=(
                    "The selected venue and time slot conflicts with existing "
                    "bookings"
                ),
            )
        )
    return classification


def _enforce_decision(enquiry_id: str, decision: GateDecision) -> None:
    """Audit the gate's findings and raise unless the change may go ahead."""
    classification = decision.classification
    if classification.has_conflicts:
        event_bus.publish(
            ConflictDetected(
                record_id=enquiry_id,
                blocking=classification.blocking,
                conflicting_record_ids=sorted(
                    {c.other_id for c in classification.warnings}
                ),
                refused=not decision.allowed,
            )
        )

    if decision.outcome == TransitionOutcome.REFUSED:
        if not decision.verified:
            raise HTTPException(status_code=503, detail=decision.message)
        raise VenueConflictError(
            _conflict_payload(
                classification,
                message=(
                    "Venue collision with existing converted/booked record. "
                    "Status change blocked."
                ),
                details=(
                    "Another record is already Converted/Booked for the same "
                    "venue, date and time."
                ),
            )
        )

    if decision.outcome == TransitionOutcome.NEEDS_ACKNOWLEDGEMENT:
        payload = _conflict_payload(
            classification,
            message="Venue collision warning. Acknowledge to proceed.",
            details=(
                "Another enquiry exists for the same venue, date and time."
            ),
        )
        payload["requires_acknowledgement"] = True
        payload["acknowledgement_token"] = decision.fingerprint
        raise VenueConflictError(payload)


def _save_response(
    record: Record, classification: ClassificationResult
) -> SaveResponse:
    report = (
        format_report(classification, settings.REPORT_DATE_FORMAT)
        if classification.has_conflicts
        else None
    )
    return SaveResponse(record=record, report=report)


# ── Routes: availability ──────────────────────────────────────────────


@app.post("/availability/check", response_model=AvailabilityCheckResponse)
def check_availability(payload: AvailabilityCheckRequest) -> AvailabilityCheckResponse:
    """Classify a candidate's sessions against every stored record."""
    classification = check_candidate(payload.candidate, record_snapshot())
    return AvailabilityCheckResponse(
        classification=classification,
        report=format_report(classification, settings.REPORT_DATE_FORMAT),
        conflict_dates=classification.conflict_dates,
    )


@app.post("/enquiries/check-conflicts", response_model=AvailabilityCheckResponse)
def check_enquiry_conflicts(
    payload: TentativeCheckRequest,
) -> AvailabilityCheckResponse:
    """Check every tentative date against every requested venue slot."""
    candidate = Candidate(
        id=payload.enquiry_id,
        sessions=expand_tentative(payload.tentative_dates, payload.venues),
    )
    return check_availability(AvailabilityCheckRequest(candidate=candidate))


# ── Routes: enquiries ─────────────────────────────────────────────────


@app.post("/enquiries", response_model=SaveResponse, status_code=201)
def create_enquiry(payload: EnquiryCreate) -> SaveResponse:
    """Create an enquiry unless its sessions collide with committed ones."""
    if payload.status not in ENQUIRY_STATUSES:
        raise HTTPException(
            status_code=400, detail=f"Invalid enquiry status: {payload.status}"
        )
    enquiry = Record(
        kind=RecordKind.ENQUIRY,
        status=payload.status,
        client_name=payload.client_name,
        reference=payload.reference,
        sessions=tuple(payload.sessions),
    )
    with write_lock:
        classification = _guard_sessions(enquiry, "Creation")
        enquiry_repo.add(enquiry)
    event_bus.publish(
        RecordSaved(
            record_id=enquiry.id,
            kind=enquiry.kind,
            session_count=len(enquiry.sessions),
            created=True,
        )
    )
    return _save_response(enquiry, classification)


@app.get("/enquiries", response_model=list[Record])
def list_enquiries() -> list[Record]:
    return enquiry_repo.list_all()


@app.get("/enquiries/{enquiry_id}", response_model=Record)
def get_enquiry(enquiry_id: str) -> Record:
    return _get_or_404(enquiry_repo, enquiry_id, "Enquiry")


@app.put("/enquiries/{enquiry_id}/sessions", response_model=SaveResponse)
def update_enquiry_sessions(enquiry_id: str, payload: SessionsUpdate) -> SaveResponse:
    """Replace an enquiry's sessions, refusing blocking collisions."""
    with write_lock:
        enquiry = _get_or_404(enquiry_repo, enquiry_id, "Enquiry")
        proposed = enquiry.model_copy(update={"sessions": tuple(payload.sessions)})
        classification = _guard_sessions(proposed, "Update")
        updated = enquiry_repo.update(enquiry_id, sessions=proposed.sessions)
    event_bus.publish(
        RecordSaved(
            record_id=enquiry_id,
            kind=RecordKind.ENQUIRY,
            session_count=len(updated.sessions),
        )
    )
    return _save_response(updated, classification)


@app.post("/enquiries/{enquiry_id}/status", response_model=StatusChangeResponse)
def change_enquiry_status(
    enquiry_id: str, body: StatusChangeRequest
) -> StatusChangeResponse:
    """Move an enquiry to a new status through the availability gate.

    A change to ``converted`` or ``booked`` is refused with a 409 when a
    committed record holds the same slot. Warning-only collisions also answer
    409 with an ``acknowledgement_token``; resending the request with that
    token as ``acknowledgement.acknowledged_warnings_for`` lets it through.
    """
    if body.status not in ENQUIRY_STATUSES:
        raise HTTPException(
            status_code=400, detail=f"Invalid enquiry status: {body.status}"
        )

    with write_lock:
        enquiry = _get_or_404(enquiry_repo, enquiry_id, "Enquiry")
        decision = check_transition(
            enquiry,
            body.status,
            load_others=record_snapshot,
            acknowledgement=body.acknowledgement,
            fail_open=settings.CONFLICT_CHECK_FAIL_OPEN,
            date_format=settings.REPORT_DATE_FORMAT,
        )
        _enforce_decision(enquiry_id, decision)
        updated = enquiry_repo.update(enquiry_id, status=body.status)

    if decision.bypass_used:
        event_bus.publish(
            WarningsAcknowledged(
                record_id=enquiry_id,
                fingerprint=decision.fingerprint,
                target_status=body.status,
            )
        )
    event_bus.publish(
        StatusChanged(
            record_id=enquiry_id,
            previous_status=enquiry.status,
            status=body.status,
            verified=decision.verified,
        )
    )
    return StatusChangeResponse(record=updated, decision=decision)


# ── Routes: bookings ──────────────────────────────────────────────────


@app.post("/bookings", response_model=SaveResponse, status_code=201)
def create_booking(payload: BookingCreate) -> SaveResponse:
    """Create a booking unless its sessions collide with committed ones."""
    if payload.enquiry_id is not None:
        _get_or_404(enquiry_repo, payload.enquiry_id, "Enquiry")
    booking = Record(
        kind=RecordKind.BOOKING,
        status=RecordStatus.BOOKED,
        client_name=payload.client_name,
        reference=payload.reference,
        enquiry_id=payload.enquiry_id,
        sessions=tuple(payload.sessions),
        hall=payload.hall,
        event_date=payload.event_date,
        event_start_time=payload.event_start_time,
        event_end_time=payload.event_end_time,
    )
    with write_lock:
        classification = _guard_sessions(booking, "Booking")
        booking_repo.add(booking)
    event_bus.publish(
        RecordSaved(
            record_id=booking.id,
            kind=booking.kind,
            session_count=len(booking.sessions),
            created=True,
        )
    )
    return _save_response(booking, classification)


@app.get("/bookings", response_model=list[Record])
def list_bookings() -> list[Record]:
    return booking_repo.list_all()


@app.get("/bookings/{booking_id}", response_model=Record)
def get_booking(booking_id: str) -> Record:
    return _get_or_404(booking_repo, booking_id, "Booking")


@app.put("/bookings/{booking_id}/sessions", response_model=SaveResponse)
def update_booking_sessions(booking_id: str, payload: SessionsUpdate) -> SaveResponse:
    """Replace a booking's sessions, refusing blocking collisions."""
    with write_lock:
        booking = _get_or_404(booking_repo, booking_id, "Booking")
        proposed = booking.model_copy(update={"sessions": tuple(payload.sessions)})
        classification = _guard_sessions(proposed, "Update")
        updated = booking_repo.update(booking_id, sessions=proposed.sessions)
    event_bus.publish(
        RecordSaved(
            record_id=booking_id,
            kind=RecordKind.BOOKING,
            session_count=len(updated.sessions),
        )
    )
    return _save_response(updated, classification)


@app.post("/bookings/{booking_id}/status", response_model=SaveResponse)
def change_booking_status(booking_id: str, body: StatusChangeRequest) -> SaveResponse:
    """Cancel, close or re-book a booking.

    Re-booking a cancelled or closed booking claims its venue time again and
    is checked like a new booking.
    """
    if body.status not in BOOKING_STATUSES:
        raise HTTPException(
            status_code=400, detail=f"Invalid booking status: {body.status}"
        )

    with write_lock:
        booking = _get_or_404(booking_repo, booking_id, "Booking")
        classification = ClassificationResult()
        if (
            body.status == RecordStatus.BOOKED
            and booking.status != RecordStatus.BOOKED
        ):
            classification = _guard_sessions(booking, "Status change")
        updated = booking_repo.update(booking_id, status=body.status)
    event_bus.publish(
        StatusChanged(
            record_id=booking_id,
            previous_status=booking.status,
            status=body.status,
        )
    )
    return _save_response(updated, classification)


# ── Routes: timeline ──────────────────────────────────────────────────


@app.get("/records/{record_id}/timeline", response_model=list[TimelineEntry])
def get_timeline(record_id: str) -> list[TimelineEntry]:
    """Return the activity timeline for an enquiry or booking."""
    if record_snapshot.get(record_id) is None:
        raise HTTPException(status_code=404, detail="Record not found")
    return timeline_repo.list_for_record(record_id)
