"""Value objects returned by the scoring engine.

None of these are persisted; a new set is built on every call.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Optional

from claw_trust.policy.model import ExclusionReason


@dataclass
class PolicySummary:
    """How many events the policy admitted, and why the rest were excluded."""

    included: int = 0
    excluded_by_confidence: int = 0
    excluded_by_source: int = 0
    excluded_by_event_override: int = 0
    excluded_by_verification: int = 0

    def record_exclusion(self, reason: ExclusionReason) -> None:
        """Increment the counter for *reason*."""
        if reason is ExclusionReason.BELOW_MIN_CONFIDENCE:
            self.excluded_by_confidence += 1
        elif reason is ExclusionReason.SOURCE_NOT_ALLOWED:
            self.excluded_by_source += 1
        elif reason is ExclusionReason.EVENT_OVERRIDE_DISABLED:
            self.excluded_by_event_override += 1
        elif reason is ExclusionReason.UNVERIFIED_SENSITIVE_EVENT:
            self.excluded_by_verification += 1

    @property
    def excluded(self) -> int:
        return (
            self.excluded_by_confidence
            + self.excluded_by_source
            + self.excluded_by_event_override
            + self.excluded_by_verification
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "included": self.included,
            "excluded_by_confidence": self.excluded_by_confidence,
            "excluded_by_source": self.excluded_by_source,
            "excluded_by_event_override": self.excluded_by_event_override,
            "excluded_by_verification": self.excluded_by_verification,
        }


@dataclass(frozen=True)
class ScoreBreakdown:
    """30-day event counts, lifetime count and policy summary."""

    positive_30d: int
    neutral_30d: int
    negative_30d: int
    severe_negative_30d: int
    lifetime_events: int
    policy: PolicySummary

    def to_dict(self) -> dict[str, object]:
        return {
            "positive_30d": self.positive_30d,
            "neutral_30d": self.neutral_30d,
            "negative_30d": self.negative_30d,
            "severe_negative_30d": self.severe_negative_30d,
            "lifetime_events": self.lifetime_events,
            "policy": self.policy.to_dict(),
        }


@dataclass(frozen=True)
class SignalQuality:
    """How much of the included evidence is confident and verified.

    Parameters
    ----------
    score:
        Weighted quality in [0, 100].
    level:
        High / Medium / Low.
    sample_size:
        Number of events the policy included.
    verified_percent:
        Share of included events from verified integrations, in percent.
    """

    score: int
    level: str
    sample_size: int
    verified_percent: int

    def to_dict(self) -> dict[str, object]:
        return {
            "score": self.score,
            "level": self.level,
            "sample_size": self.sample_size,
            "verified_percent": self.verified_percent,
        }


@dataclass(frozen=True)
class BehaviorBreakdown:
    """30-day counts that drive the behavior score."""

    on_time_30d: int
    missed_30d: int
    abandoned_30d: int
    severe_risk_30d: int
    trust_penalty: int

    def to_dict(self) -> dict[str, int]:
        return {
            "on_time_30d": self.on_time_30d,
            "missed_30d": self.missed_30d,
            "abandoned_30d": self.abandoned_30d,
            "severe_risk_30d": self.severe_risk_30d,
            "trust_penalty": self.trust_penalty,
        }


@dataclass(frozen=True)
class BehaviorScore:
    """Execution-reliability score, independent of the trust score.

    Parameters
    ----------
    score:
        Integer in [0, 100], baseline 60.
    level:
        Excellent / Strong / Stable / At Risk / Poor.
    explanation:
        Templated sentence describing the score.
    on_time_rate_30d:
        Percentage of tracked deadlines met in 30 days, or None if none
        were tracked.
    trust_influence:
        Advisory adjustment this score suggests for the trust narrative.
    breakdown:
        Underlying 30-day counts.
    """

    score: int
    level: str
    explanation: str
    on_time_rate_30d: Optional[int]
    trust_influence: int
    breakdown: BehaviorBreakdown

    def to_dict(self) -> dict[str, object]:
        return {
            "score": self.score,
            "level": self.level,
            "explanation": self.explanation,
            "on_time_rate_30d": self.on_time_rate_30d,
            "trust_influence": self.trust_influence,
            "breakdown": self.breakdown.to_dict(),
        }


@dataclass(frozen=True)
class TraceRecord:
    """Per-event contribution breakdown for audit and debugging."""

    id: str
    kind: str
    event_type: str
    source: Optional[str]
    source_type: Optional[str]
    external_event_id: Optional[str]
    verification_status: str
    included: bool
    excluded_reason: Optional[str]
    base_weight: float
    decay_factor: float
    source_factor: float
    confidence_factor: float
    event_multiplier: float
    contribution: float
    created_at: str

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "kind": self.kind,
            "event_type": self.event_type,
            "source": self.source,
            "source_type": self.source_type,
            "external_event_id": self.external_event_id,
            "verification_status": self.verification_status,
            "included": self.included,
            "excluded_reason": self.excluded_reason,
            "base_weight": self.base_weight,
            "decay_factor": self.decay_factor,
            "source_factor": self.source_factor,
            "confidence_factor": self.confidence_factor,
            "event_multiplier": self.event_multiplier,
            "contribution": self.contribution,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class ScoreResult:
    """Complete scoring output for one agent.

    ``behavior_influence`` is reported next to ``score`` and narrated in
    ``explanation`` but is never added into ``score``.
    """

    agent_id: str
    score: int
    level: str
    explanation: str
    behavior_influence: int
    signal_quality: SignalQuality
    breakdown: ScoreBreakdown
    behavior: BehaviorScore
    history: list[dict[str, object]] = field(default_factory=list)
    trace: Optional[list[TraceRecord]] = None
    computed_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        data: dict[str, object] = {
            "agent_id": self.agent_id,
            "score": self.score,
            "level": self.level,
            "explanation": self.explanation,
            "behavior_influence": self.behavior_influence,
            "signal_quality": self.signal_quality.to_dict(),
            "breakdown": self.breakdown.to_dict(),
            "behavior": self.behavior.to_dict(),
            "history": [dict(entry) for entry in self.history],
            "computed_at": self.computed_at.isoformat(),
        }
        if self.trace is not None:
            data["trace"] = [record.to_dict() for record in self.trace]
        return data


__all__ = [
    "BehaviorBreakdown",
    "BehaviorScore",
    "PolicySummary",
    "ScoreBreakdown",
    "ScoreResult",
    "SignalQuality",
    "TraceRecord",
]
