"""Score discretization into level labels.

Each table is a sequence of ``(threshold, label)`` pairs, highest first.
A score gets the first label whose threshold it reaches; scores below all
thresholds get the floor label.
"""
from __future__ import annotations

from typing import Sequence

from claw_trust.config import DEFAULT_SCORING_CONFIG, ScoringConfig


def derive_level(score: float, thresholds: Sequence[tuple[float, str]], floor: str) -> str:
    """Map *score* to a label using *thresholds*.

    Parameters
    ----------
    score:
        The score to discretize.
    thresholds:
        ``(minimum, label)`` pairs ordered from highest to lowest minimum.
    floor:
        Label returned when no threshold is reached.

    Returns
    -------
    str
    """
    for minimum, label in thresholds:
        if score >= minimum:
            return label
    return floor


def trust_level(score: float, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> str:
    """Very High / High / Medium / Low / Very Low."""
    return derive_level(score, config.trust_levels, config.trust_floor_level)


def behavior_level(score: float, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> str:
    """Excellent / Strong / Stable / At Risk / Poor."""
    return derive_level(score, config.behavior_levels, config.behavior_floor_level)


def signal_level(score: float, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> str:
    """High / Medium / Low."""
    return derive_level(score, config.signal_levels, config.signal_floor_level)


__all__ = ["behavior_level", "derive_level", "signal_level", "trust_level"]
