"""BehaviorModel — execution-reliability score over the full event stream.

The behavior score has its own baseline and weight table. It shares only
the decay, confidence and default source-trust primitives with the trust
model and ignores tenant policy exclusions. Its effect on trust is
one-directional and advisory: :func:`trust_influence` produces a signed
adjustment that the trust explanation narrates.
"""
from __future__ import annotations

import datetime
from typing import Optional, Sequence

from claw_trust.config import DEFAULT_SCORING_CONFIG, SEVERE_RISK_EVENT_TYPES, ScoringConfig
from claw_trust.ledger.event import ReputationEvent, normalize_key
from claw_trust.policy.evaluation import default_source_factor
from claw_trust.scoring.decay import age_days, confidence_factor, decay_factor, round_half_up
from claw_trust.scoring.level import behavior_level
from claw_trust.scoring.result import BehaviorBreakdown, BehaviorScore


def trust_influence(score: int, abandoned_30d: int) -> int:
    """Signed adjustment the behavior score suggests for the trust narrative."""
    influence = 0
    if score <= 35:
        influence = -6
    elif score <= 50:
        influence = -3
    elif score >= 85:
        influence = 2
    if abandoned_30d >= 2:
        influence -= 4
    return influence


def _explanation(
    level: str,
    on_time_rate: Optional[int],
    tracked: int,
    abandoned: int,
    trust_penalty: int,
) -> str:
    if on_time_rate is not None:
        text = f"{level}: {on_time_rate}% on-time across {tracked} tracked deadlines in 30 days."
    else:
        text = f"{level}: no tracked deadlines in 30 days; score reflects general activity."
    if abandoned > 0:
        text += f" {abandoned} abandoned task(s) in 30 days."
    if trust_penalty > 0:
        text += f" Severe risk signals reduced reliability by {trust_penalty}."
    return text


class BehaviorModel:
    """Compute :class:`BehaviorScore` values from reported events.

    Parameters
    ----------
    config:
        Scoring constants. Defaults to :data:`DEFAULT_SCORING_CONFIG`.
    """

    def __init__(self, config: Optional[ScoringConfig] = None) -> None:
        self._config = config if config is not None else DEFAULT_SCORING_CONFIG

    def weight_of(self, event: ReputationEvent) -> float:
        """Behavior weight for an event, falling back to its kind."""
        config = self._config
        event_type = normalize_key(event.event_type)
        if event_type in config.behavior_weights:
            return config.behavior_weights[event_type]
        return config.behavior_kind_fallback_weights.get(normalize_key(event.kind.value), 0.0)

    def score(
        self,
        events: Sequence[ReputationEvent],
        now: datetime.datetime,
    ) -> BehaviorScore:
        """Score *events* as of *now*.

        Parameters
        ----------
        events:
            The agent's full event stream (not policy-filtered).
        now:
            Reference time for decay and the 30-day window.

        Returns
        -------
        BehaviorScore
        """
        config = self._config
        total = config.behavior_baseline
        on_time = missed = abandoned = severe_risk = 0

        for event in events:
            days = age_days(event.created_at, now)
            contribution = (
                self.weight_of(event)
                * decay_factor(days, config.half_life_days)
                * confidence_factor(event.confidence)
                * default_source_factor(event.source_type, config)
            )
            total += contribution

            if days <= config.recent_window_days:
                event_type = normalize_key(event.event_type)
                if event_type == "completed_task_on_time":
                    on_time += 1
                elif event_type == "missed_deadline":
                    missed += 1
                elif event_type == "task_abandoned":
                    abandoned += 1
                if event_type in SEVERE_RISK_EVENT_TYPES:
                    severe_risk += 1

        trust_penalty = int(
            min(config.severe_risk_penalty_cap, config.severe_risk_penalty_per_event * severe_risk)
        )
        value = round_half_up(
            max(config.min_score, min(config.max_score, total - trust_penalty))
        )
        level = behavior_level(value, config)

        tracked = on_time + missed
        on_time_rate = round_half_up(100.0 * on_time / tracked) if tracked > 0 else None

        return BehaviorScore(
            score=value,
            level=level,
            explanation=_explanation(level, on_time_rate, tracked, abandoned, trust_penalty),
            on_time_rate_30d=on_time_rate,
            trust_influence=trust_influence(value, abandoned),
            breakdown=BehaviorBreakdown(
                on_time_30d=on_time,
                missed_30d=missed,
                abandoned_30d=abandoned,
                severe_risk_30d=severe_risk,
                trust_penalty=trust_penalty,
            ),
        )


__all__ = ["BehaviorModel", "trust_influence"]
