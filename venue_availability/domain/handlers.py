"""Domain event handlers — wired up at application startup."""

from __future__ import annotations

import logging

from venue_availability.domain.bus import EventBus
from venue_availability.domain.events import (
    ConflictDetected,
    RecordSaved,
    StatusChanged,
    WarningsAcknowledged,
)
from venue_availability.domain.models import TimelineEntry, TimelineEntryType
from venue_availability.repos.memory import TimelineRepository

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires domain-event handlers to the bus with access to the timeline."""

    def __init__(self, bus: EventBus, timeline_repo: TimelineRepository) -> None:
        self.bus = bus
        self.timeline_repo = timeline_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(RecordSaved, self.on_record_saved)
        self.bus.subscribe(ConflictDetected, self.on_conflict_detected)
        self.bus.subscribe(WarningsAcknowledged, self.on_warnings_acknowledged)
        self.bus.subscribe(StatusChanged, self.on_status_changed)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_record_saved(self, event: RecordSaved) -> None:
        self.timeline_repo.add(
            TimelineEntry(
                record_id=event.record_id,
                type=TimelineEntryType.SAVED,
                payload={
                    "kind": event.kind.value,
                    "session_count": event.session_count,
                    "created": event.created,
                },
            )
        )

    def on_conflict_detected(self, event: ConflictDetected) -> None:
        if event.refused:
            logger.info(
                "Refused %s: blocking venue conflict with %s",
                event.record_id,
                ", ".join(event.conflicting_record_ids),
            )
        self.timeline_repo.add(
            TimelineEntry(
                record_id=event.record_id,
                type=TimelineEntryType.CONFLICT_DETECTED,
                payload={
                    "blocking": event.blocking,
                    "refused": event.refused,
                    "conflicting_record_ids": event.conflicting_record_ids,
                },
            )
        )

    def on_warnings_acknowledged(self, event: WarningsAcknowledged) -> None:
        logger.info(
            "Warnings acknowledged for %s -> %s (%s)",
            event.record_id,
            event.target_status,
            event.fingerprint[:12],
        )
        self.timeline_repo.add(
            TimelineEntry(
                record_id=event.record_id,
                type=TimelineEntryType.WARNINGS_ACKNOWLEDGED,
                payload={
                    "fingerprint": event.fingerprint,
                    "target_status": event.target_status.value,
                },
            )
        )

    def on_status_changed(self, event: StatusChanged) -> None:
        if not event.verified:
            logger.warning(
                "%s moved to %s without a verified availability check",
                event.record_id,
                event.status,
            )
        self.timeline_repo.add(
            TimelineEntry(
                record_id=event.record_id,
                type=TimelineEntryType.STATUS_CHANGED,
                payload={
                    "from": event.previous_status.value,
                    "to": event.status.value,
                    "verified": event.verified,
                },
            )
        )
