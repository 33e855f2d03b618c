"""Tests for the event bus and the timeline handlers."""

from __future__ import annotations

import pytest

from venue_availability.domain.bus import EventBus
from venue_availability.domain.events import (
    ConflictDetected,
    RecordSaved,
    StatusChanged,
    WarningsAcknowledged,
)
from venue_availability.domain.handlers import HandlerRegistry
from venue_availability.domain.models import (
    RecordKind,
    RecordStatus,
    TimelineEntryType,
)
from venue_availability.repos.memory import (
    BookingRepository,
    EnquiryRepository,
    RecordSnapshot,
    TimelineRepository,
    seed_sample_data,
)


@pytest.fixture()
def env():
    """Fresh bus + timeline + registry for each test."""
    bus = EventBus()
    timeline_repo = TimelineRepository()
    registry = HandlerRegistry(bus=bus, timeline_repo=timeline_repo)

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.timeline_repo = timeline_repo
    e.registry = registry
    return e


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------


def test_bus_calls_handlers_in_registration_order():
    bus = EventBus()
    calls: list[str] = []
    bus.subscribe(RecordSaved, lambda e: calls.append("first"))
    bus.subscribe(RecordSaved, lambda e: calls.append("second"))

    bus.publish(RecordSaved(record_id="r1", kind=RecordKind.ENQUIRY, session_count=1))

    assert calls == ["first", "second"]


def test_bus_ignores_events_without_subscribers():
    bus = EventBus()
    bus.publish(RecordSaved(record_id="r1", kind=RecordKind.BOOKING, session_count=0))


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def test_record_saved_adds_timeline_entry(env):
    env.bus.publish(
        RecordSaved(
            record_id="r1", kind=RecordKind.BOOKING, session_count=2, created=True
        )
    )

    (entry,) = env.timeline_repo.list_for_record("r1")
    assert entry.type == TimelineEntryType.SAVED
    assert entry.payload == {"kind": "booking", "session_count": 2, "created": True}


def test_conflict_detected_records_refusal(env):
    env.bus.publish(
        ConflictDetected(
            record_id="r1",
            blocking=True,
            conflicting_record_ids=["b1", "e2"],
            refused=True,
        )
    )

    (entry,) = env.timeline_repo.list_for_record("r1")
    assert entry.type == TimelineEntryType.CONFLICT_DETECTED
    assert entry.payload["refused"] is True
    assert entry.payload["conflicting_record_ids"] == ["b1", "e2"]


def test_acknowledgement_and_status_change_are_audited(env):
    env.bus.publish(
        WarningsAcknowledged(
            record_id="r1", fingerprint="abc123", target_status=RecordStatus.CONVERTED
        )
    )
    env.bus.publish(
        StatusChanged(
            record_id="r1",
            previous_status=RecordStatus.ONGOING,
            status=RecordStatus.CONVERTED,
        )
    )

    entries = env.timeline_repo.list_for_record("r1")
    assert [e.type for e in entries] == [
        TimelineEntryType.WARNINGS_ACKNOWLEDGED,
        TimelineEntryType.STATUS_CHANGED,
    ]
    assert entries[0].payload["fingerprint"] == "abc123"
    assert entries[1].payload == {
        "from": "ongoing",
        "to": "converted",
        "verified": True,
    }


def test_timeline_is_per_record(env):
    env.bus.publish(
        RecordSaved(record_id="r1", kind=RecordKind.ENQUIRY, session_count=1)
    )
    env.bus.publish(
        RecordSaved(record_id="r2", kind=RecordKind.ENQUIRY, session_count=1)
    )

    assert len(env.timeline_repo.list_for_record("r1")) == 1
    assert env.timeline_repo.list_for_record("missing") == []


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


def test_repository_rejects_wrong_kind():
    enquiries = EnquiryRepository()
    bookings = BookingRepository()
    seed_sample_data(enquiries, bookings)

    booking = bookings.list_all()[0]
    with pytest.raises(ValueError):
        enquiries.add(booking)


def test_snapshot_reads_repositories_afresh():
    enquiries = EnquiryRepository()
    bookings = BookingRepository()
    snapshot = RecordSnapshot(enquiries, bookings)
    assert snapshot() == []

    seed_sample_data(enquiries, bookings)

    records = snapshot()
    assert len(records) == 4
    assert snapshot.get(records[0].id) == records[0]


def test_update_replaces_record():
    enquiries = EnquiryRepository()
    seed_sample_data(enquiries, BookingRepository())
    enquiry = enquiries.list_all()[0]

    updated = enquiries.update(enquiry.id, status=RecordStatus.LOST)

    assert updated.status == RecordStatus.LOST
    assert enquiry.status != RecordStatus.LOST
    assert enquiries.get(enquiry.id) == updated
    assert enquiries.update("missing", status=RecordStatus.LOST) is None
