"""Append-only event ledger for reported agent events."""
from __future__ import annotations

from claw_trust.ledger.event import (
    EventKind,
    EventValidationError,
    ReputationEvent,
    normalize_key,
    parse_timestamp,
)
from claw_trust.ledger.store import DuplicateEventError, EventLedger

__all__ = [
    "DuplicateEventError",
    "EventKind",
    "EventLedger",
    "EventValidationError",
    "ReputationEvent",
    "normalize_key",
    "parse_timestamp",
]
