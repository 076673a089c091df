"""Decision audit trail."""
from __future__ import annotations

from claw_trust.audit.decision_log import (
    DecisionAuditEntry,
    DecisionAuditLogger,
    entries_to_csv,
)

__all__ = ["DecisionAuditEntry", "DecisionAuditLogger", "entries_to_csv"]
