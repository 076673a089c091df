"""Trust, behavior and signal-quality scoring.

Trust starts at 50 and moves with time-decayed, policy-filtered event
weights. Behavior starts at 60 and uses its own weight table over the full
event stream. Signal quality measures how much of the admitted evidence is
confident and verified.
"""
from __future__ import annotations

from claw_trust.scoring.behavior import BehaviorModel, trust_influence
from claw_trust.scoring.decay import age_days, confidence_factor, decay_factor, round_half_up
from claw_trust.scoring.engine import ScoringEngine
from claw_trust.scoring.level import behavior_level, derive_level, signal_level, trust_level
from claw_trust.scoring.result import (
    BehaviorBreakdown,
    BehaviorScore,
    PolicySummary,
    ScoreBreakdown,
    ScoreResult,
    SignalQuality,
    TraceRecord,
)

__all__ = [
    "BehaviorBreakdown",
    "BehaviorModel",
    "BehaviorScore",
    "PolicySummary",
    "ScoreBreakdown",
    "ScoreResult",
    "ScoringEngine",
    "SignalQuality",
    "TraceRecord",
    "age_days",
    "behavior_level",
    "confidence_factor",
    "decay_factor",
    "derive_level",
    "round_half_up",
    "signal_level",
    "trust_influence",
    "trust_level",
]
