"""Numeric primitives shared by the trust and behavior models."""
from __future__ import annotations

import datetime
import math
from typing import Optional

from claw_trust.ledger.event import parse_timestamp

_LN_2 = math.log(2.0)
_SECONDS_PER_DAY = 86400.0


def age_days(created_at: object, now: datetime.datetime) -> float:
    """Return the age of an event in days, never negative.

    Timestamps that do not parse are treated as "now" (age zero).
    """
    parsed = parse_timestamp(created_at)
    if parsed is None:
        return 0.0
    return max(0.0, (now - parsed).total_seconds() / _SECONDS_PER_DAY)


def decay_factor(days: float, half_life_days: float) -> float:
    """Exponential decay: the weight halves every *half_life_days*."""
    return math.exp(-_LN_2 * days / half_life_days)


def confidence_factor(confidence: Optional[float]) -> float:
    """Clamp a reporter confidence to [0, 1]; missing or non-finite means 1."""
    if confidence is None or isinstance(confidence, bool):
        return 1.0
    try:
        value = float(confidence)
    except (TypeError, ValueError):
        return 1.0
    if not math.isfinite(value):
        return 1.0
    return max(0.0, min(1.0, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


__all__ = ["age_days", "confidence_factor", "decay_factor", "round_half_up"]
