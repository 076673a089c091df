"""TrustService — validates input, owns mutable state, calls the engines.

The service is the single writer for the event ledger and the policy
store. Score and preflight requests load the tenant's policy and a
snapshot of the agent's events, then hand both to the stateless engines.
State can be snapshotted to, and restored from, a JSON file.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from claw_trust.audit.decision_log import DecisionAuditLogger
from claw_trust.decision.preflight import ActionContext, Decision, DecisionEngine
from claw_trust.ledger.event import EventValidationError, ReputationEvent, normalize_key
from claw_trust.ledger.store import EventLedger
from claw_trust.policy.model import TrustPolicy
from claw_trust.policy.store import PolicyStore
from claw_trust.scoring.engine import ScoringEngine
from claw_trust.scoring.result import ScoreResult

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


@dataclass(frozen=True)
class RecordedEvent:
    """Result of recording an event: the event and the score movement."""

    event: ReputationEvent
    previous_score: int
    score: ScoreResult

    def to_dict(self) -> dict[str, object]:
        return {
            "event": self.event.to_dict(),
            "previous_score": self.previous_score,
            "score": {
                "value": self.score.score,
                "level": self.score.level,
                "explanation": self.score.explanation,
            },
        }


def _require_agent_id(agent_id: object) -> str:
    normalized = normalize_key(agent_id)
    if not normalized:
        raise EventValidationError("agent_id is required.")
    return normalized


class TrustService:
    """Facade over ledger, policy store, engines and audit log.

    Parameters
    ----------
    ledger:
        Event ledger. A fresh one is created if omitted.
    policies:
        Policy store. A fresh one is created if omitted.
    scoring_engine:
        Scoring engine. Defaults to one with the default config.
    decision_engine:
        Decision engine. Defaults to one with the default config.
    audit_logger:
        Decision audit logger. Defaults to an in-memory logger.
    """

    def __init__(
        self,
        ledger: Optional[EventLedger] = None,
        policies: Optional[PolicyStore] = None,
        scoring_engine: Optional[ScoringEngine] = None,
        decision_engine: Optional[DecisionEngine] = None,
        audit_logger: Optional[DecisionAuditLogger] = None,
    ) -> None:
        self.ledger = ledger if ledger is not None else EventLedger()
        self.policies = policies if policies is not None else PolicyStore()
        self.scoring_engine = scoring_engine if scoring_engine is not None else ScoringEngine()
        self.decision_engine = decision_engine if decision_engine is not None else DecisionEngine()
        self.audit_logger = audit_logger if audit_logger is not None else DecisionAuditLogger()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def record_event(self, tenant: str, payload: Mapping[str, object]) -> RecordedEvent:
        """Validate *payload*, append it to the ledger and rescore the agent.

        Raises
        ------
        EventValidationError
            If required fields are missing or malformed.
        DuplicateEventError
            If the event is a replay.
        """
        event = ReputationEvent.from_dict(payload)
        policy = self.policies.get_policy(tenant)
        previous = self.scoring_engine.score_agent(
            event.agent_id, self.ledger.events_for(tenant, event.agent_id), policy=policy
        )
        self.ledger.append(tenant, event)
        current = self.scoring_engine.score_agent(
            event.agent_id, self.ledger.events_for(tenant, event.agent_id), policy=policy
        )
        logger.debug(
            "Recorded %s event %s for %s/%s (score %d -> %d)",
            event.kind.value,
            event.event_type,
            tenant,
            event.agent_id,
            previous.score,
            current.score,
        )
        return RecordedEvent(event=event, previous_score=previous.score, score=current)

    def record_verified_event(
        self,
        tenant: str,
        payload: Mapping[str, object],
    ) -> RecordedEvent:
        """Record an event delivered by a verified integration.

        ``source`` and ``event_id`` are required. The event is stamped as
        ``verified_integration`` and, when no confidence is supplied, gets
        0.95 if the payload says ``verified: true`` and 0.8 otherwise.
        """
        source = normalize_key(payload.get("source"))
        if not source:
            raise EventValidationError("source is required.")
        event_id = str(payload.get("event_id") or "").strip()
        if not event_id:
            raise EventValidationError("event_id is required.")
        default_confidence = 0.95 if payload.get("verified") is True else 0.8
        normalized = dict(payload)
        normalized.update(
            {
                "source": source,
                "source_type": "verified_integration",
                "external_event_id": event_id,
            }
        )
        confidence = normalized.get("confidence")
        if confidence is None or isinstance(confidence, bool):
            normalized["confidence"] = default_confidence
        else:
            try:
                normalized["confidence"] = max(0.0, min(1.0, float(confidence)))  # type: ignore[arg-type]
            except (TypeError, ValueError):
                normalized["confidence"] = default_confidence
        return self.record_event(tenant, normalized)

    # ------------------------------------------------------------------
    # Scores and decisions
    # ------------------------------------------------------------------

    def get_score(
        self,
        tenant: str,
        agent_id: object,
        include_trace: bool = False,
        trace_limit: Optional[int] = None,
    ) -> ScoreResult:
        """Score an agent under the tenant's policy."""
        normalized = _require_agent_id(agent_id)
        result = self.scoring_engine.score_agent(
            normalized,
            self.ledger.events_for(tenant, normalized),
            policy=self.policies.get_policy(tenant),
            include_trace=include_trace,
            trace_limit=trace_limit,
        )
        logger.debug("Scored %s/%s: %d (%s)", tenant, normalized, result.score, result.level)
        return result

    def preflight(self, tenant: str, payload: Mapping[str, object]) -> Decision:
        """Run a preflight decision for ``payload["agent_id"]`` and audit it."""
        agent_id = _require_agent_id(payload.get("agent_id"))
        context = ActionContext.from_dict(payload)
        policy = self.policies.get_policy(tenant)
        trust = self.scoring_engine.score_agent(
            agent_id, self.ledger.events_for(tenant, agent_id), policy=policy
        )
        decision = self.decision_engine.preflight(agent_id, context, trust, policy)
        self.audit_logger.log_decision(decision, context, tenant=tenant)
        logger.info(
            "Preflight %s for %s/%s: %s (adjusted %d)",
            context.action_type,
            tenant,
            agent_id,
            decision.decision.value,
            decision.adjusted_score,
        )
        return decision

    def decision_log(self, tenant: str, limit: Optional[int] = None) -> list[dict[str, object]]:
        """Return the tenant's audited decisions, newest first."""
        return self.audit_logger.read_log(limit=limit, tenant=tenant)

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    def get_policy(self, tenant: str) -> TrustPolicy:
        return self.policies.get_policy(tenant)

    def set_policy(self, tenant: str, patch: Mapping[str, object]) -> TrustPolicy:
        return self.policies.set_policy(tenant, patch)

    def apply_policy_preset(self, tenant: str, name: str) -> TrustPolicy:
        return self.policies.apply_preset(tenant, name)

    def reset_policy(self, tenant: str) -> TrustPolicy:
        return self.policies.reset_policy(tenant)

    def list_policy_presets(self) -> dict[str, object]:
        return self.policies.list_presets()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def save_snapshot(self, path: Path) -> None:
        """Write events and policies to *path* as JSON."""
        data = {
            "version": SNAPSHOT_VERSION,
            "events": self.ledger.to_dict(),
            "policies": self.policies.to_dict(),
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        logger.info("Snapshot written to %s (%d events)", path, len(self.ledger))

    def load_snapshot(self, path: Path) -> None:
        """Load a snapshot written by :meth:`save_snapshot`, if it exists."""
        if not path.exists():
            return
        data = json.loads(path.read_text(encoding="utf-8"))
        loaded = self.ledger.restore(data.get("events") or {})
        self.policies.restore(data.get("policies") or {})
        logger.info("Snapshot loaded from %s (%d events)", path, loaded)


__all__ = ["RecordedEvent", "SNAPSHOT_VERSION", "TrustService"]
