"""Engine configuration — weight tables, decay, score bounds and thresholds.

Every constant the scoring and decision engines use lives on one of the two
frozen models below. The engines receive a config instance at construction,
so alternate weight tables can be injected without touching module globals.
"""
from __future__ import annotations

from pydantic import BaseModel, Field

# Event types that require verified sourcing when a policy sets
# ``require_verified_sensitive``. Not policy-configurable.
SENSITIVE_EVENT_TYPES: frozenset[str] = frozenset(
    {
        "payment_success",
        "failed_payment",
        "security_flag",
        "abuse_report",
        "api_key_leak",
        "impersonation_report",
        "unresolved_dispute",
    }
)

# Event types counted as severe risk by the behavior model.
SEVERE_RISK_EVENT_TYPES: frozenset[str] = frozenset(
    {"api_key_leak", "security_flag", "abuse_report", "impersonation_report"}
)

DEFAULT_SOURCE_TYPE_FACTORS: dict[str, float] = {
    "verified_integration": 1.0,
    "self_reported": 0.75,
    "unverified": 0.6,
    "manual": 1.0,
}


class ScoringConfig(BaseModel, frozen=True):
    """Constants for the trust, behavior and signal-quality models.

    Parameters
    ----------
    event_weights:
        Trust weight per event type.
    kind_fallback_weights:
        Trust weight for event types missing from ``event_weights``.
    behavior_weights:
        Behavior weight per event type.
    behavior_kind_fallback_weights:
        Behavior weight for event types missing from ``behavior_weights``.
    source_type_factors:
        Default source-trust factor per source type. Unknown source types
        use ``unknown_source_factor``.
    source_quality_factors:
        Per-source-type factor used by the signal-quality score. Unknown
        source types use ``unknown_source_quality``.
    half_life_days:
        Days after which an event's weight is halved.
    """

    event_weights: dict[str, float] = Field(
        default_factory=lambda: {
            "completed_task_on_time": 8.0,
            "payment_success": 10.0,
            "verification_passed": 6.0,
            "collaborative_feedback_positive": 5.0,
            "failed_payment": -12.0,
            "unresolved_dispute": -10.0,
            "security_flag": -20.0,
            "abuse_report": -25.0,
            "api_key_leak": -35.0,
            "impersonation_report": -22.0,
            "spam_report": -15.0,
        }
    )
    kind_fallback_weights: dict[str, float] = Field(
        default_factory=lambda: {"positive": 5.0, "neutral": 0.0, "negative": -8.0}
    )
    behavior_weights: dict[str, float] = Field(
        default_factory=lambda: {
            "completed_task_on_time": 10.0,
            "verification_passed": 3.0,
            "collaborative_feedback_positive": 4.0,
            "payment_success": 4.0,
            "missed_deadline": -10.0,
            "task_abandoned": -14.0,
            "failed_payment": -6.0,
            "unresolved_dispute": -8.0,
            "spam_report": -6.0,
            "security_flag": -8.0,
            "abuse_report": -10.0,
            "api_key_leak": -12.0,
            "impersonation_report": -10.0,
        }
    )
    behavior_kind_fallback_weights: dict[str, float] = Field(
        default_factory=lambda: {"positive": 4.0, "neutral": 0.0, "negative": -6.0}
    )
    source_type_factors: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_SOURCE_TYPE_FACTORS)
    )
    unknown_source_factor: float = 1.0
    source_quality_factors: dict[str, float] = Field(
        default_factory=lambda: {
            "verified_integration": 1.0,
            "manual": 0.85,
            "self_reported": 0.55,
            "unverified": 0.35,
        }
    )
    unknown_source_quality: float = 0.7
    min_signal_weight: float = 0.05

    half_life_days: float = Field(default=30.0, gt=0.0)
    recent_window_days: float = 30.0
    score_baseline: float = 50.0
    behavior_baseline: float = 60.0
    min_score: float = 0.0
    max_score: float = 100.0

    # (threshold, label) pairs, highest first.
    trust_levels: tuple[tuple[float, str], ...] = (
        (90.0, "Very High"),
        (75.0, "High"),
        (55.0, "Medium"),
        (35.0, "Low"),
    )
    trust_floor_level: str = "Very Low"
    behavior_levels: tuple[tuple[float, str], ...] = (
        (85.0, "Excellent"),
        (70.0, "Strong"),
        (50.0, "Stable"),
        (35.0, "At Risk"),
    )
    behavior_floor_level: str = "Poor"
    signal_levels: tuple[tuple[float, str], ...] = ((80.0, "High"), (55.0, "Medium"))
    signal_floor_level: str = "Low"

    severe_risk_penalty_per_event: float = 4.0
    severe_risk_penalty_cap: float = 12.0

    history_size: int = 10
    default_trace_limit: int = 5
    max_trace_limit: int = 20


class PreflightConfig(BaseModel, frozen=True):
    """Constants for the preflight decision engine.

    ``amount_risk_steps`` stack: an amount at or above several thresholds
    accrues every matching increment.
    """

    amount_risk_steps: tuple[tuple[float, int], ...] = (
        (1000.0, 10),
        (5000.0, 15),
        (20000.0, 20),
    )
    new_payee_risk: int = 15
    first_time_counterparty_risk: int = 10
    high_privilege_risk: int = 20
    exposes_api_keys_risk: int = 25
    max_risk_penalty: int = 60

    block_below: int = 35
    review_below: int = 55

    severe_incident_block_count: int = 2
    severe_incident_min_risk: int = 20

    behavior_severe_below: int = 40
    behavior_severe_penalty: int = 12
    behavior_caution_below: int = 55
    behavior_caution_penalty: int = 6
    behavior_credit_at: int = 85
    behavior_credit: int = 3


DEFAULT_SCORING_CONFIG = ScoringConfig()
DEFAULT_PREFLIGHT_CONFIG = PreflightConfig()

__all__ = [
    "DEFAULT_PREFLIGHT_CONFIG",
    "DEFAULT_SCORING_CONFIG",
    "DEFAULT_SOURCE_TYPE_FACTORS",
    "PreflightConfig",
    "SENSITIVE_EVENT_TYPES",
    "SEVERE_RISK_EVENT_TYPES",
    "ScoringConfig",
]
