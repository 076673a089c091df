"""Policy evaluation — decide whether an event counts and how strongly.

:func:`evaluate_policy` is total: any event, including ones with unknown
event or source types, yields a :class:`PolicyEffect`.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from claw_trust.config import DEFAULT_SCORING_CONFIG, SENSITIVE_EVENT_TYPES, ScoringConfig
from claw_trust.ledger.event import ReputationEvent, normalize_key
from claw_trust.policy.model import ExclusionReason, TrustPolicy


@dataclass(frozen=True)
class PolicyEffect:
    """Outcome of evaluating one event against a policy.

    ``source_factor`` and ``event_multiplier`` are only set for included
    events.
    """

    included: bool
    reason: Optional[ExclusionReason] = None
    source_factor: Optional[float] = None
    event_multiplier: Optional[float] = None


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def is_sensitive(event_type: str) -> bool:
    """True if *event_type* requires verified sourcing under strict policies."""
    return normalize_key(event_type) in SENSITIVE_EVENT_TYPES


def default_source_factor(
    source_type: Optional[str],
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> float:
    """Source-trust factor from the default table, ignoring any policy."""
    return config.source_type_factors.get(
        normalize_key(source_type), config.unknown_source_factor
    )


def evaluate_policy(
    event: ReputationEvent,
    policy: TrustPolicy,
    confidence: float,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> PolicyEffect:
    """Evaluate *event* against *policy*.

    Checks run in :class:`ExclusionReason` order and the first match wins.

    Parameters
    ----------
    event:
        The event being scored.
    policy:
        The tenant's policy.
    confidence:
        The event's effective confidence factor (already defaulted and
        clamped by the caller).
    config:
        Supplies the default source-trust table.

    Returns
    -------
    PolicyEffect
    """
    event_type = normalize_key(event.event_type)
    source = normalize_key(event.source)
    source_type = normalize_key(event.source_type)
    override = policy.event_overrides.get(event_type)

    if override is not None and override.enabled is False:
        return PolicyEffect(included=False, reason=ExclusionReason.EVENT_OVERRIDE_DISABLED)

    if (
        policy.require_verified_sensitive
        and event_type in SENSITIVE_EVENT_TYPES
        and source_type != "verified_integration"
    ):
        return PolicyEffect(included=False, reason=ExclusionReason.UNVERIFIED_SENSITIVE_EVENT)

    if confidence < policy.min_confidence:
        return PolicyEffect(included=False, reason=ExclusionReason.BELOW_MIN_CONFIDENCE)

    if policy.allowed_sources and (not source or source not in policy.allowed_sources):
        return PolicyEffect(included=False, reason=ExclusionReason.SOURCE_NOT_ALLOWED)

    policy_factor = policy.source_type_multipliers.get(source_type)
    if policy_factor is not None and math.isfinite(policy_factor):
        source_factor = clamp(policy_factor, 0.0, 2.0)
    else:
        source_factor = default_source_factor(source_type, config)

    event_multiplier = 1.0
    if override is not None and override.multiplier is not None:
        event_multiplier = clamp(override.multiplier, 0.0, 3.0)

    return PolicyEffect(
        included=True,
        source_factor=source_factor,
        event_multiplier=event_multiplier,
    )


__all__ = ["PolicyEffect", "clamp", "default_source_factor", "evaluate_policy", "is_sensitive"]
