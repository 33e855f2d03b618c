"""In-memory repositories for enquiries, bookings and the activity timeline."""

from __future__ import annotations

from datetime import date, timedelta

from venue_availability.domain.models import (
    Record,
    RecordKind,
    RecordStatus,
    Session,
    TimelineEntry,
)


class RecordRepository:
    """Dict-backed store for Record instances of one kind, keyed by id."""

    kind: RecordKind

    def __init__(self) -> None:
        self._store: dict[str, Record] = {}

    def add(self, record: Record) -> None:
        if record.kind != self.kind:
            raise ValueError(f"expected a {self.kind} record, got {record.kind}")
        self._store[record.id] = record

    def get(self, record_id: str) -> Record | None:
        return self._store.get(record_id)

    def list_all(self) -> list[Record]:
        return list(self._store.values())

    def update(self, record_id: str, **changes) -> Record | None:
        """Replace a stored record with a copy carrying *changes*."""
        current = self._store.get(record_id)
        if current is None:
            return None
        updated = current.model_copy(update=changes)
        self._store[record_id] = updated
        return updated


class EnquiryRepository(RecordRepository):
    kind = RecordKind.ENQUIRY


class BookingRepository(RecordRepository):
    kind = RecordKind.BOOKING


class RecordSnapshot:
    """Callable returning every enquiry and booking as one list.

    Each call reads the repositories afresh so conflict checks never see a
    stale view.
    """

    def __init__(
        self, enquiry_repo: EnquiryRepository, booking_repo: BookingRepository
    ) -> None:
        self.enquiry_repo = enquiry_repo
        self.booking_repo = booking_repo

    def __call__(self) -> list[Record]:
        return self.enquiry_repo.list_all() + self.booking_repo.list_all()

    def get(self, record_id: str) -> Record | None:
        return self.enquiry_repo.get(record_id) or self.booking_repo.get(record_id)


class TimelineRepository:
    """List-backed store for TimelineEntry instances."""

    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []

    def add(self, entry: TimelineEntry) -> None:
        self._entries.append(entry)

    def list_for_record(self, record_id: str) -> list[TimelineEntry]:
        return sorted(
            [e for e in self._entries if e.record_id == record_id],
            key=lambda e: e.timestamp,
        )


# ---------------------------------------------------------------------------
# Seed data – a small week of venue usage useful for conflict testing
# ---------------------------------------------------------------------------


def seed_sample_data(
    enquiry_repo: EnquiryRepository, booking_repo: BookingRepository
) -> None:
    day = date.today() + timedelta(days=14)

    wedding = Record(
        kind=RecordKind.ENQUIRY,
        status=RecordStatus.CONVERTED,
        client_name="Mehta Wedding",
        reference="ENQ-0001",
        sessions=(
            Session(
                venue="Grand Ballroom",
                session_date=day,
                start_time="18:00",
                end_time="23:00",
                session_name="Reception",
            ),
        ),
    )
    enquiry_repo.add(wedding)
    booking_repo.add(
        Record(
            kind=RecordKind.BOOKING,
            status=RecordStatus.BOOKED,
            client_name="Mehta Wedding",
            reference="BK-0001",
            enquiry_id=wedding.id,
            sessions=wedding.sessions,
        )
    )

    enquiry_repo.add(
        Record(
            kind=RecordKind.ENQUIRY,
            status=RecordStatus.QUOTATION_SENT,
            client_name="Acme Offsite",
            reference="ENQ-0002",
            sessions=(
                Session(
                    venue="Garden Lawn",
                    session_date=day,
                    start_time="09:00",
                    end_time="13:00",
                    session_name="Workshop",
                ),
                Session(
                    venue="Garden Lawn",
                    session_date=day,
                    start_time="13:00",
                    end_time="14:00",
                    session_name="Lunch",
                ),
            ),
        )
    )

    # Booked before sessions existed: whole-day hire of the terrace.
    booking_repo.add(
        Record(
            kind=RecordKind.BOOKING,
            status=RecordStatus.BOOKED,
            client_name="Rotary Club",
            reference="BK-0002",
            hall="Rooftop Terrace",
            event_date=day + timedelta(days=1),
        )
    )
