"""Domain events emitted by the availability workflows."""

from __future__ import annotations

from pydantic import BaseModel

from venue_availability.domain.models import RecordKind, RecordStatus


class RecordSaved(BaseModel):
    """Fired when an enquiry or booking is created or its sessions change."""

    record_id: str
    kind: RecordKind
    session_count: int
    created: bool = False


class ConflictDetected(BaseModel):
    """Fired when a check finds overlaps, whether or not it was refused."""

    record_id: str
    blocking: bool
    conflicting_record_ids: list[str]
    refused: bool = False


class WarningsAcknowledged(BaseModel):
    """Fired when a transition proceeds on an acknowledged warning set."""

    record_id: str
    fingerprint: str
    target_status: RecordStatus


class StatusChanged(BaseModel):
    """Fired after a record's lifecycle status has been updated."""

    record_id: str
    previous_status: RecordStatus
    status: RecordStatus
    verified: bool = True
