"""ScoringEngine — time-decayed, policy-filtered trust scoring.

Each event contributes::

    base_weight * decay * source_factor * confidence_factor * event_multiplier

to a running score that starts at the baseline (50) and is clamped to
[0, 100] and rounded at the end. Decay is exponential with a 30-day
half-life. The engine is stateless: it reads "now" once per call and
returns a new :class:`ScoreResult` every time.
"""
from __future__ import annotations

import datetime
from typing import Optional, Sequence

from claw_trust.config import DEFAULT_SCORING_CONFIG, SENSITIVE_EVENT_TYPES, ScoringConfig
from claw_trust.ledger.event import EventKind, ReputationEvent, normalize_key, parse_timestamp
from claw_trust.policy.evaluation import default_source_factor, evaluate_policy
from claw_trust.policy.model import TrustPolicy, default_policy
from claw_trust.scoring.behavior import BehaviorModel
from claw_trust.scoring.decay import age_days, confidence_factor, decay_factor, round_half_up
from claw_trust.scoring.level import signal_level, trust_level
from claw_trust.scoring.result import (
    PolicySummary,
    ScoreBreakdown,
    ScoreResult,
    SignalQuality,
    TraceRecord,
)

_EPOCH = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)


def _explanation(level: str, positive_30d: int, negative_30d: int, influence: int) -> str:
    if positive_30d > 0 and negative_30d == 0:
        text = (
            f"{level}: {positive_30d} successful/positive events, "
            "no negative events in 30 days."
        )
    elif positive_30d == 0 and negative_30d == 0:
        text = f"{level}: no recent events; score currently reflects older activity with time decay."
    else:
        text = f"{level}: {positive_30d} positive vs {negative_30d} negative events in 30 days."
    if influence != 0:
        text += f" Behavior influence: {influence:+d}."
    return text


def _history_entry(event: ReputationEvent) -> dict[str, object]:
    return {
        "id": event.id,
        "event_type": event.event_type,
        "kind": event.kind.value,
        "source": event.source,
        "source_type": event.source_type,
        "confidence": event.confidence,
        "verification_status": "verified" if event.is_verified else "unverified",
        "details": event.details,
        "external_event_id": event.external_event_id,
        "created_at": event.created_at,
    }


class ScoringEngine:
    """Compute trust, behavior and signal-quality scores for an agent.

    Safe to share between threads; it holds only immutable configuration.

    Parameters
    ----------
    config:
        Weight tables and constants. Defaults to
        :data:`~claw_trust.config.DEFAULT_SCORING_CONFIG`.
    """

    def __init__(self, config: Optional[ScoringConfig] = None) -> None:
        self._config = config if config is not None else DEFAULT_SCORING_CONFIG
        self._behavior = BehaviorModel(self._config)

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def weight_of(self, event: ReputationEvent) -> float:
        """Trust weight for an event, falling back to its kind."""
        config = self._config
        event_type = normalize_key(event.event_type)
        if event_type in config.event_weights:
            return config.event_weights[event_type]
        return config.kind_fallback_weights.get(normalize_key(event.kind.value), 0.0)

    def score_agent(
        self,
        agent_id: str,
        events: Sequence[ReputationEvent],
        policy: Optional[TrustPolicy] = None,
        include_trace: bool = False,
        trace_limit: Optional[int] = None,
        now: Optional[datetime.datetime] = None,
    ) -> ScoreResult:
        """Score *events* for *agent_id*.

        Parameters
        ----------
        agent_id:
            The agent being scored.
        events:
            The agent's events, in any order.
        policy:
            Tenant policy. Defaults to :func:`default_policy`.
        include_trace:
            When True, attach the per-event contribution trace.
        trace_limit:
            Maximum trace records, clamped to [1, 20]. Defaults to 5.
        now:
            Reference time. Defaults to the current UTC time. A naive value
            is taken to be UTC.

        Returns
        -------
        ScoreResult
        """
        config = self._config
        active_policy = policy if policy is not None else default_policy()
        if now is None:
            reference = datetime.datetime.now(datetime.timezone.utc)
        elif now.tzinfo is None:
            reference = now.replace(tzinfo=datetime.timezone.utc)
        else:
            reference = now.astimezone(datetime.timezone.utc)

        running = config.score_baseline
        positive_30d = neutral_30d = negative_30d = severe_negative_30d = 0
        summary = PolicySummary()
        weight_total = quality_total = 0.0
        verified_included = 0
        trace: list[TraceRecord] = []

        for event in events:
            days = age_days(event.created_at, reference)
            decay = decay_factor(days, config.half_life_days)
            confidence = confidence_factor(event.confidence)
            base_weight = self.weight_of(event)
            effect = evaluate_policy(event, active_policy, confidence, config)

            source_factor = (
                effect.source_factor
                if effect.source_factor is not None
                else default_source_factor(event.source_type, config)
            )
            event_multiplier = effect.event_multiplier if effect.event_multiplier is not None else 1.0
            contribution = 0.0

            if effect.included:
                contribution = base_weight * decay * source_factor * confidence * event_multiplier
                running += contribution
                summary.included += 1

                signal_weight = max(config.min_signal_weight, decay * confidence)
                quality = config.source_quality_factors.get(
                    normalize_key(event.source_type), config.unknown_source_quality
                )
                weight_total += signal_weight
                quality_total += signal_weight * quality
                if event.is_verified:
                    verified_included += 1
            elif effect.reason is not None:
                summary.record_exclusion(effect.reason)

            if days <= config.recent_window_days:
                if event.kind is EventKind.POSITIVE:
                    positive_30d += 1
                elif event.kind is EventKind.NEUTRAL:
                    neutral_30d += 1
                elif event.kind is EventKind.NEGATIVE:
                    negative_30d += 1
                    if normalize_key(event.event_type) in SENSITIVE_EVENT_TYPES:
                        severe_negative_30d += 1

            if include_trace:
                if not effect.included:
                    status = "policy_excluded"
                else:
                    status = "verified" if event.is_verified else "unverified"
                trace.append(
                    TraceRecord(
                        id=event.id,
                        kind=event.kind.value,
                        event_type=event.event_type,
                        source=event.source,
                        source_type=event.source_type,
                        external_event_id=event.external_event_id,
                        verification_status=status,
                        included=effect.included,
                        excluded_reason=effect.reason.value if effect.reason else None,
                        base_weight=base_weight,
                        decay_factor=round(decay, 4),
                        source_factor=round(source_factor, 4),
                        confidence_factor=round(confidence, 4),
                        event_multiplier=round(event_multiplier, 4),
                        contribution=round(contribution, 4),
                        created_at=event.created_at,
                    )
                )

        score = round_half_up(max(config.min_score, min(config.max_score, running)))
        level = trust_level(score, config)
        behavior = self._behavior.score(events, reference)

        signal_score = round_half_up(100.0 * quality_total / weight_total) if weight_total > 0 else 0
        signal = SignalQuality(
            score=signal_score,
            level=signal_level(signal_score, config),
            sample_size=summary.included,
            verified_percent=(
                round_half_up(100.0 * verified_included / summary.included)
                if summary.included
                else 0
            ),
        )

        result_trace: Optional[list[TraceRecord]] = None
        if include_trace:
            limit = trace_limit if trace_limit is not None else config.default_trace_limit
            limit = max(1, min(config.max_trace_limit, int(limit)))
            result_trace = sorted(trace, key=lambda r: abs(r.contribution), reverse=True)[:limit]

        return ScoreResult(
            agent_id=agent_id,
            score=score,
            level=level,
            explanation=_explanation(level, positive_30d, negative_30d, behavior.trust_influence),
            behavior_influence=behavior.trust_influence,
            signal_quality=signal,
            breakdown=ScoreBreakdown(
                positive_30d=positive_30d,
                neutral_30d=neutral_30d,
                negative_30d=negative_30d,
                severe_negative_30d=severe_negative_30d,
                lifetime_events=len(events),
                policy=summary,
            ),
            behavior=behavior,
            history=self._history(events),
            trace=result_trace,
            computed_at=reference,
        )

    def _history(self, events: Sequence[ReputationEvent]) -> list[dict[str, object]]:
        """Most recent events first, for display."""
        ordered = sorted(
            events,
            key=lambda e: parse_timestamp(e.created_at) or _EPOCH,
            reverse=True,
        )
        return [_history_entry(event) for event in ordered[: self._config.history_size]]


__all__ = ["ScoringEngine"]
