"""Service gating enquiry status changes on venue availability.

A change to ``converted`` or ``booked`` commits the enquiry's venue time, so
it is only allowed once the enquiry's sessions have been checked against every
other enquiry and booking:

* a blocking conflict refuses the change outright;
* warning-only conflicts need an explicit acknowledgement. The acknowledgement
  is a token naming the fingerprint of the reviewed sessions and target
  status. It is passed with a single attempt and never stored, so a token
  issued for one set of sessions never unlocks a different one.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Callable, Iterable

from venue_availability.domain.errors import SnapshotUnavailableError
from venue_availability.domain.models import (
    Candidate,
    GateDecision,
    Record,
    RecordStatus,
    TransitionOutcome,
    WarningAcknowledgement,
)
from venue_availability.services.conflicts import check_candidate
from venue_availability.services.normalizer import normalize_all
from venue_availability.services.reporter import DEFAULT_DATE_FORMAT, format_report

logger = logging.getLogger(__name__)

GATED_STATUSES = frozenset({RecordStatus.CONVERTED, RecordStatus.BOOKED})

UNVERIFIED_PROCEED_MESSAGE = "Could not verify venue availability. Proceeding."
UNVERIFIED_REFUSE_MESSAGE = "Could not verify venue availability. Try again later."


def sessions_fingerprint(candidate: Candidate, target_status: RecordStatus) -> str:
    """Hash the candidate's complete sessions together with the target status.

    Session order does not matter; incomplete sessions are ignored since
    they never take part in a check.
    """
    keys = sorted(
        (n.venue, n.date_key, n.start_minutes, n.end_minutes)
        for _, n in normalize_all(candidate.sessions)
    )
    blob = json.dumps({"status": str(target_status), "sessions": keys})
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


def gate_transition(
    enquiry: Record,
    target_status: RecordStatus,
    others: Iterable[Record],
    acknowledgement: WarningAcknowledgement | None = None,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> GateDecision:
    """Decide whether *enquiry* may move to *target_status*.

    The full check runs on every call; an acknowledgement only ever
    suppresses warnings, never blocking conflicts.
    """
    if target_status not in GATED_STATUSES:
        return GateDecision(
            outcome=TransitionOutcome.ALLOWED, target_status=target_status
        )

    candidate = Candidate.from_record(enquiry)
    classification = check_candidate(candidate, others)
    fingerprint = sessions_fingerprint(candidate, target_status)
    report = (
        format_report(classification, date_format)
        if classification.has_conflicts
        else None
    )

    if classification.blocking:
        outcome = TransitionOutcome.REFUSED
        bypass_used = False
    elif classification.has_conflicts:
        bypass_used = (
            acknowledgement is not None
            and acknowledgement.acknowledged_warnings_for == fingerprint
        )
        outcome = (
            TransitionOutcome.ALLOWED
            if bypass_used
            else TransitionOutcome.NEEDS_ACKNOWLEDGEMENT
        )
    else:
        outcome = TransitionOutcome.ALLOWED
        bypass_used = False

    return GateDecision(
        outcome=outcome,
        target_status=target_status,
        fingerprint=fingerprint,
        bypass_used=bypass_used,
        classification=classification,
        report=report,
    )


def _unverified(
    enquiry: Record, target_status: RecordStatus, fail_open: bool
) -> GateDecision:
    if fail_open:
        logger.warning(
            "Snapshot unavailable; allowing %s -> %s unverified",
            enquiry.id,
            target_status,
        )
        return GateDecision(
            outcome=TransitionOutcome.ALLOWED,
            target_status=target_status,
            verified=False,
            message=UNVERIFIED_PROCEED_MESSAGE,
        )
    logger.warning(
        "Snapshot unavailable; refusing %s -> %s", enquiry.id, target_status
    )
    return GateDecision(
        outcome=TransitionOutcome.REFUSED,
        target_status=target_status,
        verified=False,
        message=UNVERIFIED_REFUSE_MESSAGE,
    )


def check_transition(
    enquiry: Record,
    target_status: RecordStatus,
    load_others: Callable[[], Iterable[Record]],
    acknowledgement: WarningAcknowledgement | None = None,
    fail_open: bool = True,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> GateDecision:
    """Load the current snapshot of other records and gate the transition.

    If loading fails for any reason the decision follows *fail_open*:
    proceed unverified (the historical behavior) or refuse unverified.
    """
    if target_status not in GATED_STATUSES:
        return gate_transition(enquiry, target_status, ())

    try:
        others = list(load_others())
    except SnapshotUnavailableError:
        return _unverified(enquiry, target_status, fail_open)
    except Exception:
        logger.warning("Loading records for %s failed", enquiry.id, exc_info=True)
        return _unverified(enquiry, target_status, fail_open)

    return gate_transition(
        enquiry, target_status, others, acknowledgement, date_format
    )
