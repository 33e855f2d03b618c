"""Exceptions raised by the availability workflows."""

from __future__ import annotations


class SnapshotUnavailableError(Exception):
    """The set of other enquiries and bookings could not be loaded."""


class VenueConflictError(Exception):
    """A workflow was refused because of venue conflicts.

    Carries the JSON body returned to HTTP clients with a 409.
    """

    def __init__(self, payload: dict) -> None:
        super().__init__(payload.get("message", "Venue conflict detected"))
        self.payload = payload
