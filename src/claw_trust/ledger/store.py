"""EventLedger — append-only, tenant-scoped store of reputation events.

Events are kept in memory keyed by ``(tenant, agent_id)``. Reads return a
copy of the list so the scoring engine always works on a consistent
snapshot, even while other threads keep appending.
"""
from __future__ import annotations

import hashlib
import threading
import time
from collections import defaultdict

from claw_trust.ledger.event import ReputationEvent

# Identical submissions inside this window are rejected as duplicates.
DUPLICATE_WINDOW_SECONDS = 10.0


class DuplicateEventError(ValueError):
    """Raised when an event is a replay of one already in the ledger."""


class EventLedger:
    """Append-only event store scoped per tenant and agent.

    Thread-safe. Two kinds of duplicates are rejected on append:

    - an event whose ``(source, external_event_id)`` pair was already
      ledgered for the tenant;
    - an event identical in agent, kind, type and details to one the same
      tenant submitted less than ``duplicate_window`` seconds ago.

    Parameters
    ----------
    duplicate_window:
        Seconds during which identical submissions are rejected. Set to 0
        to disable the check.
    """

    def __init__(self, duplicate_window: float = DUPLICATE_WINDOW_SECONDS) -> None:
        self._events: dict[tuple[str, str], list[ReputationEvent]] = defaultdict(list)
        self._external_ids: set[tuple[str, str, str]] = set()
        self._recent_hashes: dict[str, float] = {}
        self._duplicate_window = duplicate_window
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def append(self, tenant: str, event: ReputationEvent) -> ReputationEvent:
        """Append *event* to the ledger for *tenant*.

        Raises
        ------
        DuplicateEventError
            If the event is a replay (see class docstring).
        """
        now = time.monotonic()
        digest = self._fingerprint(tenant, event)
        external_key = (
            (tenant, event.source or "", event.external_event_id)
            if event.external_event_id
            else None
        )

        with self._lock:
            if external_key is not None and external_key in self._external_ids:
                raise DuplicateEventError(
                    f"Event {event.external_event_id!r} from source "
                    f"{event.source or '(none)'!r} was already recorded."
                )
            self._prune(now)
            seen_at = self._recent_hashes.get(digest)
            if seen_at is not None and now - seen_at < self._duplicate_window:
                raise DuplicateEventError(
                    "Duplicate event rejected (same event submitted too quickly)."
                )
            self._recent_hashes[digest] = now
            if external_key is not None:
                self._external_ids.add(external_key)
            self._events[(tenant, event.agent_id)].append(event)
        return event

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def events_for(self, tenant: str, agent_id: str) -> list[ReputationEvent]:
        """Return a snapshot of the events recorded for an agent."""
        with self._lock:
            return list(self._events.get((tenant, agent_id), []))

    def agent_ids(self, tenant: str) -> list[str]:
        """Return sorted agent IDs that have events under *tenant*."""
        with self._lock:
            return sorted(agent for (owner, agent) in self._events if owner == tenant)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(events) for events in self._events.values())

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, dict[str, list[dict[str, object]]]]:
        """Serialize all events as ``{tenant: {agent_id: [event, ...]}}``."""
        output: dict[str, dict[str, list[dict[str, object]]]] = {}
        with self._lock:
            for (tenant, agent_id), events in self._events.items():
                output.setdefault(tenant, {})[agent_id] = [e.to_dict() for e in events]
        return output

    def restore(self, data: dict[str, dict[str, list[dict[str, object]]]]) -> int:
        """Load events produced by :meth:`to_dict`. Returns the number loaded.

        Restored events bypass the quick-duplicate window but their
        external IDs are registered for idempotency.
        """
        loaded = 0
        with self._lock:
            for tenant, agents in data.items():
                for entries in agents.values():
                    for entry in entries:
                        event = ReputationEvent.from_dict(entry)
                        self._events[(tenant, event.agent_id)].append(event)
                        if event.external_event_id:
                            self._external_ids.add(
                                (tenant, event.source or "", event.external_event_id)
                            )
                        loaded += 1
        return loaded

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _fingerprint(tenant: str, event: ReputationEvent) -> str:
        raw = "|".join(
            [event.agent_id, event.kind.value, event.event_type, event.details or "", tenant]
        )
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def _prune(self, now: float) -> None:
        expired = [
            digest
            for digest, seen_at in self._recent_hashes.items()
            if now - seen_at >= self._duplicate_window
        ]
        for digest in expired:
            del self._recent_hashes[digest]


__all__ = ["DUPLICATE_WINDOW_SECONDS", "DuplicateEventError", "EventLedger"]
