"""DecisionAuditLogger — append-only JSONL log of preflight decisions.

Every preflight outcome is appended as one JSON line to the configured log
file, giving an append-only trail suitable for compliance review. Without
a file path the logger keeps entries in a bounded in-memory buffer.

Entries can be exported as CSV with :func:`entries_to_csv`.
"""
from __future__ import annotations

import csv
import datetime
import io
import json
import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from claw_trust.decision.preflight import ActionContext, Decision

DEFAULT_MAX_BUFFERED = 5000

CSV_COLUMNS = ("timestamp", "tenant", "action", "agent_id", "outcome", "score", "reason", "metadata")


@dataclass
class DecisionAuditEntry:
    """A single audited decision.

    Parameters
    ----------
    action:
        What was decided on (e.g. ``"payment"``).
    agent_id:
        The acting agent.
    outcome:
        allow / review / block.
    score:
        The adjusted score the decision was based on.
    reason:
        Human-readable reason.
    tenant:
        Tenant scope that requested the decision.
    metadata:
        Risk penalty, raw trust score and action context.
    """

    action: str
    agent_id: str
    outcome: str
    score: Optional[int]
    reason: str
    tenant: str = ""
    metadata: dict[str, object] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary suitable for JSON encoding."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "tenant": self.tenant,
            "action": self.action,
            "agent_id": self.agent_id,
            "outcome": self.outcome,
            "score": self.score,
            "reason": self.reason,
            "metadata": self.metadata,
        }


class DecisionAuditLogger:
    """Append-only decision audit log.

    Thread-safe. Each call to :meth:`log` appends one JSON line to the
    configured file (or to the in-memory buffer if no path is set).

    Parameters
    ----------
    log_path:
        Path to the JSONL log file. Parent directories are created. If
        None, entries are buffered in memory only.
    max_buffered:
        Capacity of the in-memory buffer; the oldest entries are dropped.
    """

    def __init__(
        self,
        log_path: Path | None = None,
        max_buffered: int = DEFAULT_MAX_BUFFERED,
    ) -> None:
        self._log_path = log_path
        self._buffer: deque[str] = deque(maxlen=max_buffered)
        self._lock = threading.Lock()

        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Core logging
    # ------------------------------------------------------------------

    def log(self, entry: DecisionAuditEntry) -> DecisionAuditEntry:
        """Append *entry* to the log and return it."""
        line = json.dumps(entry.to_dict(), separators=(",", ":"), default=str)
        with self._lock:
            if self._log_path is not None:
                with self._log_path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            else:
                self._buffer.append(line)
        return entry

    def log_decision(
        self,
        decision: Decision,
        context: ActionContext,
        tenant: str = "",
    ) -> DecisionAuditEntry:
        """Record a preflight decision together with its action context."""
        entry = DecisionAuditEntry(
            action=context.action_type,
            agent_id=decision.agent_id,
            outcome=decision.decision.value,
            score=decision.adjusted_score,
            reason=decision.reason,
            tenant=tenant,
            metadata={
                "trust_score": decision.trust.get("score"),
                "risk_penalty": decision.policy.get("risk_penalty"),
                "context": context.to_dict(),
            },
        )
        return self.log(entry)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def read_log(
        self,
        limit: int | None = None,
        tenant: str | None = None,
    ) -> list[dict[str, object]]:
        """Return logged entries, newest first.

        Parameters
        ----------
        limit:
            Maximum entries to return. None returns everything.
        tenant:
            When given, only entries for this tenant are returned.
        """
        with self._lock:
            if self._log_path is not None and self._log_path.exists():
                lines = self._log_path.read_text(encoding="utf-8").splitlines()
            else:
                lines = list(self._buffer)

        parsed: list[dict[str, object]] = []
        for line in reversed(lines):
            stripped = line.strip()
            if not stripped:
                continue
            try:
                entry: dict[str, object] = json.loads(stripped)
            except json.JSONDecodeError:
                continue
            if tenant is not None and entry.get("tenant") != tenant:
                continue
            parsed.append(entry)
            if limit is not None and len(parsed) >= limit:
                break
        return parsed


def entries_to_csv(entries: Iterable[dict[str, object]]) -> str:
    """Render audit entries as CSV with a header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for entry in entries:
        score = entry.get("score")
        writer.writerow(
            [
                entry.get("timestamp", ""),
                entry.get("tenant", ""),
                entry.get("action", ""),
                entry.get("agent_id", ""),
                entry.get("outcome", ""),
                score if isinstance(score, (int, float)) else "",
                entry.get("reason") or "",
                json.dumps(entry.get("metadata") or {}, separators=(",", ":")),
            ]
        )
    return buffer.getvalue()


__all__ = ["CSV_COLUMNS", "DecisionAuditEntry", "DecisionAuditLogger", "entries_to_csv"]
