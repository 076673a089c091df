"""claw-trust — explainable trust and behavior scoring for AI agents.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import claw_trust
>>> claw_trust.__version__
'0.1.0'

Quick start
-----------
::

    from claw_trust import ActionContext, TrustService

    service = TrustService()
    service.record_event(
        "tenant-key",
        {"agent_id": "agent-1", "kind": "positive", "event_type": "completed_task_on_time"},
    )
    print(service.get_score("tenant-key", "agent-1").score)
    decision = service.preflight("tenant-key", {"agent_id": "agent-1", "amount_usd": 250})
    print(decision.decision.value, decision.reason)
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------
from claw_trust.config import (
    DEFAULT_PREFLIGHT_CONFIG,
    DEFAULT_SCORING_CONFIG,
    SENSITIVE_EVENT_TYPES,
    SEVERE_RISK_EVENT_TYPES,
    PreflightConfig,
    ScoringConfig,
)

# ------------------------------------------------------------------
# Ledger
# ------------------------------------------------------------------
from claw_trust.ledger import (
    DuplicateEventError,
    EventKind,
    EventLedger,
    EventValidationError,
    ReputationEvent,
)

# ------------------------------------------------------------------
# Policy
# ------------------------------------------------------------------
from claw_trust.policy import (
    EventOverride,
    ExclusionReason,
    PolicyEffect,
    PolicyStore,
    PolicyValidationError,
    TrustPolicy,
    evaluate_policy,
)

# ------------------------------------------------------------------
# Scoring and decisions
# ------------------------------------------------------------------
from claw_trust.scoring import BehaviorScore, ScoreResult, ScoringEngine, SignalQuality
from claw_trust.decision import ActionContext, Decision, DecisionEngine, DecisionOutcome

# ------------------------------------------------------------------
# Audit and service
# ------------------------------------------------------------------
from claw_trust.audit import DecisionAuditEntry, DecisionAuditLogger
from claw_trust.service import RecordedEvent, TrustService

__all__ = [
    "__version__",
    # Configuration
    "DEFAULT_PREFLIGHT_CONFIG",
    "DEFAULT_SCORING_CONFIG",
    "PreflightConfig",
    "SENSITIVE_EVENT_TYPES",
    "SEVERE_RISK_EVENT_TYPES",
    "ScoringConfig",
    # Ledger
    "DuplicateEventError",
    "EventKind",
    "EventLedger",
    "EventValidationError",
    "ReputationEvent",
    # Policy
    "EventOverride",
    "ExclusionReason",
    "PolicyEffect",
    "PolicyStore",
    "PolicyValidationError",
    "TrustPolicy",
    "evaluate_policy",
    # Scoring and decisions
    "ActionContext",
    "BehaviorScore",
    "Decision",
    "DecisionEngine",
    "DecisionOutcome",
    "ScoreResult",
    "ScoringEngine",
    "SignalQuality",
    # Audit and service
    "DecisionAuditEntry",
    "DecisionAuditLogger",
    "RecordedEvent",
    "TrustService",
]
