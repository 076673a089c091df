"""Preflight decisions — allow, review or block a risky action.

The decision combines the trust score, the behavior score, signal quality
and an additive risk heuristic derived from the action context. Rules are
evaluated in a fixed order and the first match wins:

1. raw trust below 35 → block
2. two or more severe incidents in 30 days and risk penalty ≥ 20 → block
3. adjusted score below 35 → block
4. adjusted score below 55 → review
5. otherwise → allow

Finally, a policy ``min_signal_quality`` gate can downgrade allow to
review. It never touches a block.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

from claw_trust.config import DEFAULT_PREFLIGHT_CONFIG, PreflightConfig
from claw_trust.policy.model import TrustPolicy
from claw_trust.scoring.result import ScoreResult


class DecisionOutcome(str, Enum):
    """Preflight verdicts."""

    ALLOW = "allow"
    REVIEW = "review"
    BLOCK = "block"


def _amount(value: object) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


@dataclass(frozen=True)
class ActionContext:
    """Describes the action an agent is about to perform.

    Parameters
    ----------
    amount_usd:
        Transaction amount in USD.
    new_payee:
        The payee has never been paid before.
    first_time_counterparty:
        First interaction with this counterparty.
    high_privilege_action:
        The action needs elevated privileges.
    exposes_api_keys:
        The action exposes API keys or other credentials.
    action_type:
        Label recorded in the audit log (e.g. ``"payment"``).
    """

    amount_usd: float = 0.0
    new_payee: bool = False
    first_time_counterparty: bool = False
    high_privilege_action: bool = False
    exposes_api_keys: bool = False
    action_type: str = "preflight"

    @classmethod
    def from_dict(cls, payload: Mapping[str, object]) -> "ActionContext":
        """Build a context from loosely typed input.

        Non-numeric amounts count as 0 and only a literal ``True`` sets a
        flag.
        """
        action_type = payload.get("action_type")
        return cls(
            amount_usd=_amount(payload.get("amount_usd")),
            new_payee=payload.get("new_payee") is True,
            first_time_counterparty=payload.get("first_time_counterparty") is True,
            high_privilege_action=payload.get("high_privilege_action") is True,
            exposes_api_keys=payload.get("exposes_api_keys") is True,
            action_type=str(action_type).strip() if action_type else "preflight",
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "action_type": self.action_type,
            "amount_usd": self.amount_usd,
            "new_payee": self.new_payee,
            "first_time_counterparty": self.first_time_counterparty,
            "high_privilege_action": self.high_privilege_action,
            "exposes_api_keys": self.exposes_api_keys,
        }


@dataclass(frozen=True)
class Decision:
    """Preflight verdict plus the snapshots that justify it."""

    agent_id: str
    decision: DecisionOutcome
    reason: str
    trust: dict[str, object] = field(default_factory=dict)
    policy: dict[str, object] = field(default_factory=dict)

    @property
    def adjusted_score(self) -> int:
        return int(self.policy.get("adjusted_score", 0))  # type: ignore[call-overload]

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {
            "agent_id": self.agent_id,
            "decision": self.decision.value,
            "reason": self.reason,
            "trust": dict(self.trust),
            "policy": dict(self.policy),
        }


class DecisionEngine:
    """Stateless preflight decision function.

    Parameters
    ----------
    config:
        Thresholds and risk increments. Defaults to
        :data:`~claw_trust.config.DEFAULT_PREFLIGHT_CONFIG`.
    """

    def __init__(self, config: Optional[PreflightConfig] = None) -> None:
        self._config = config if config is not None else DEFAULT_PREFLIGHT_CONFIG

    @property
    def config(self) -> PreflightConfig:
        return self._config

    def risk_penalty(self, context: ActionContext) -> int:
        """Additive risk heuristic for *context*, capped at ``max_risk_penalty``."""
        config = self._config
        risk = 0
        for threshold, increment in config.amount_risk_steps:
            if context.amount_usd >= threshold:
                risk += increment
        if context.new_payee:
            risk += config.new_payee_risk
        if context.first_time_counterparty:
            risk += config.first_time_counterparty_risk
        if context.high_privilege_action:
            risk += config.high_privilege_risk
        if context.exposes_api_keys:
            risk += config.exposes_api_keys_risk
        return min(risk, config.max_risk_penalty)

    def behavior_adjustment(self, behavior_score: int) -> tuple[int, int]:
        """Return ``(penalty, credit)`` for a behavior score."""
        config = self._config
        if behavior_score < config.behavior_severe_below:
            penalty = config.behavior_severe_penalty
        elif behavior_score < config.behavior_caution_below:
            penalty = config.behavior_caution_penalty
        else:
            penalty = 0
        credit = config.behavior_credit if behavior_score >= config.behavior_credit_at else 0
        return penalty, credit

    def preflight(
        self,
        agent_id: str,
        context: ActionContext,
        trust: ScoreResult,
        policy: Optional[TrustPolicy] = None,
    ) -> Decision:
        """Decide whether *agent_id* may perform the action in *context*.

        Parameters
        ----------
        agent_id:
            The acting agent.
        context:
            Risk-relevant facts about the action.
        trust:
            The agent's current score result.
        policy:
            Tenant policy; only ``min_signal_quality`` is read here.

        Returns
        -------
        Decision
        """
        config = self._config
        risk = self.risk_penalty(context)
        behavior_penalty, behavior_credit = self.behavior_adjustment(trust.behavior.score)
        adjusted = max(0, min(100, trust.score - risk - behavior_penalty + behavior_credit))
        severe = trust.breakdown.severe_negative_30d
        min_signal_quality = policy.min_signal_quality if policy is not None else 0.0

        if trust.score < config.block_below:
            outcome = DecisionOutcome.BLOCK
            reason = (
                f"Blocked: trust score {trust.score} is below hard minimum {config.block_below}."
            )
        elif severe >= config.severe_incident_block_count and risk >= config.severe_incident_min_risk:
            outcome = DecisionOutcome.BLOCK
            reason = (
                f"Blocked: {severe} severe incidents in 30 days combined with "
                f"high-risk action context (risk penalty {risk})."
            )
        elif adjusted < config.block_below:
            outcome = DecisionOutcome.BLOCK
            reason = (
                f"Blocked: adjusted score {adjusted} is below hard minimum {config.block_below}."
            )
        elif adjusted < config.review_below:
            outcome = DecisionOutcome.REVIEW
            reason = f"Manual review required: adjusted score {adjusted} is in caution band."
        else:
            outcome = DecisionOutcome.ALLOW
            reason = f"Trust score {trust.score} is acceptable for this action."

        if (
            min_signal_quality > 0
            and trust.signal_quality.score < min_signal_quality
            and outcome is not DecisionOutcome.BLOCK
        ):
            outcome = DecisionOutcome.REVIEW
            reason = (
                f"Manual review required: signal quality {trust.signal_quality.score} "
                f"is below policy minimum {min_signal_quality:g}."
            )

        return Decision(
            agent_id=agent_id,
            decision=outcome,
            reason=reason,
            trust={
                "agent_id": trust.agent_id,
                "score": trust.score,
                "level": trust.level,
                "explanation": trust.explanation,
                "behavior_score": trust.behavior.score,
                "behavior_level": trust.behavior.level,
                "signal_quality": trust.signal_quality.score,
                "signal_quality_level": trust.signal_quality.level,
                "severe_negative_30d": severe,
            },
            policy={
                "adjusted_score": adjusted,
                "risk_penalty": risk,
                "behavior_penalty": behavior_penalty,
                "behavior_credit": behavior_credit,
                "thresholds": {
                    "block_below": config.block_below,
                    "review_below": config.review_below,
                    "min_signal_quality": min_signal_quality,
                },
            },
        )


__all__ = ["ActionContext", "Decision", "DecisionEngine", "DecisionOutcome"]
