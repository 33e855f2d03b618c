"""Service for deciding whether two sessions occupy the same slot."""

from __future__ import annotations

from venue_availability.domain.models import NormalizedSession


def overlaps(a: NormalizedSession, b: NormalizedSession) -> bool:
    """Return True if *a* and *b* share a venue, a day and some time.

    Overlap rule: same venue (exact match), same date key, and
    a.start < b.end AND a.end > b.start.
    Exact boundary touches (end == start) are NOT considered conflicts.
    """
    return (
        a.venue == b.venue
        and a.date_key == b.date_key
        and a.start_minutes < b.end_minutes
        and a.end_minutes > b.start_minutes
    )
