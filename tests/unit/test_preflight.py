"""Tests for claw_trust.decision.preflight — risk heuristic and decision rules."""
from __future__ import annotations

import pytest

from claw_trust.decision.preflight import ActionContext, DecisionEngine, DecisionOutcome
from claw_trust.policy.model import TrustPolicy
from claw_trust.scoring.result import (
    BehaviorBreakdown,
    BehaviorScore,
    PolicySummary,
    ScoreBreakdown,
    ScoreResult,
    SignalQuality,
)


def _trust(
    score: int,
    behavior: int = 60,
    signal: int = 100,
    severe_negative: int = 0,
) -> ScoreResult:
    return ScoreResult(
        agent_id="agent-d",
        score=score,
        level="Medium",
        explanation="",
        behavior_influence=0,
        signal_quality=SignalQuality(
            score=signal, level="High", sample_size=1, verified_percent=100
        ),
        breakdown=ScoreBreakdown(
            positive_30d=0,
            neutral_30d=0,
            negative_30d=severe_negative,
            severe_negative_30d=severe_negative,
            lifetime_events=severe_negative,
            policy=PolicySummary(),
        ),
        behavior=BehaviorScore(
            score=behavior,
            level="Stable",
            explanation="",
            on_time_rate_30d=None,
            trust_influence=0,
            breakdown=BehaviorBreakdown(
                on_time_30d=0, missed_30d=0, abandoned_30d=0, severe_risk_30d=0, trust_penalty=0
            ),
        ),
    )


@pytest.fixture()
def engine() -> DecisionEngine:
    return DecisionEngine()


class TestActionContext:
    def test_from_dict_defaults(self) -> None:
        context = ActionContext.from_dict({})
        assert context.amount_usd == 0.0
        assert context.new_payee is False
        assert context.action_type == "preflight"

    def test_only_literal_true_sets_flags(self) -> None:
        context = ActionContext.from_dict(
            {"new_payee": "true", "first_time_counterparty": 1, "exposes_api_keys": True}
        )
        assert context.new_payee is False
        assert context.first_time_counterparty is False
        assert context.exposes_api_keys is True

    @pytest.mark.parametrize("amount", ["lots", None, True, float("inf")])
    def test_non_numeric_amount_is_zero(self, amount: object) -> None:
        assert ActionContext.from_dict({"amount_usd": amount}).amount_usd == 0.0

    def test_numeric_string_amount(self) -> None:
        assert ActionContext.from_dict({"amount_usd": "1500"}).amount_usd == 1500.0


class TestRiskPenalty:
    @pytest.mark.parametrize(
        ("amount", "expected"),
        [(0, 0), (999.99, 0), (1000, 10), (4999, 10), (5000, 25), (19999, 25), (20000, 45)],
    )
    def test_amount_thresholds_stack(
        self, engine: DecisionEngine, amount: float, expected: int
    ) -> None:
        assert engine.risk_penalty(ActionContext(amount_usd=amount)) == expected

    def test_flags_add_up(self, engine: DecisionEngine) -> None:
        context = ActionContext(new_payee=True, first_time_counterparty=True)
        assert engine.risk_penalty(context) == 25

    def test_penalty_capped_at_sixty(self, engine: DecisionEngine) -> None:
        context = ActionContext(
            amount_usd=25000,
            new_payee=True,
            first_time_counterparty=True,
            high_privilege_action=True,
            exposes_api_keys=True,
        )
        assert engine.risk_penalty(context) == 60


class TestBehaviorAdjustment:
    @pytest.mark.parametrize(
        ("behavior", "expected"),
        [(39, (12, 0)), (40, (6, 0)), (54, (6, 0)), (55, (0, 0)), (84, (0, 0)), (85, (0, 3))],
    )
    def test_bands(
        self, engine: DecisionEngine, behavior: int, expected: tuple[int, int]
    ) -> None:
        assert engine.behavior_adjustment(behavior) == expected


class TestDecisionRules:
    def test_low_trust_always_blocks(self, engine: DecisionEngine) -> None:
        decision = engine.preflight("agent-d", ActionContext(), _trust(20))
        assert decision.decision is DecisionOutcome.BLOCK
        assert decision.reason == "Blocked: trust score 20 is below hard minimum 35."

    def test_trust_thirty_blocks_with_zero_risk(self, engine: DecisionEngine) -> None:
        decision = engine.preflight("agent-d", ActionContext(), _trust(30, behavior=90))
        assert decision.decision is DecisionOutcome.BLOCK

    def test_large_new_payment_blocks(self, engine: DecisionEngine) -> None:
        context = ActionContext(amount_usd=25000, new_payee=True, first_time_counterparty=True)
        decision = engine.preflight("agent-d", context, _trust(70))
        assert decision.policy["risk_penalty"] == 60
        assert decision.adjusted_score == 10
        assert decision.decision is DecisionOutcome.BLOCK
        assert decision.reason == "Blocked: adjusted score 10 is below hard minimum 35."

    def test_severe_incidents_with_risky_context_block(self, engine: DecisionEngine) -> None:
        context = ActionContext(high_privilege_action=True)
        decision = engine.preflight("agent-d", context, _trust(90, severe_negative=2))
        assert decision.decision is DecisionOutcome.BLOCK
        assert decision.reason == (
            "Blocked: 2 severe incidents in 30 days combined with "
            "high-risk action context (risk penalty 20)."
        )

    def test_severe_incidents_with_low_risk_do_not_block(self, engine: DecisionEngine) -> None:
        context = ActionContext(first_time_counterparty=True)
        decision = engine.preflight("agent-d", context, _trust(90, severe_negative=3))
        assert decision.decision is DecisionOutcome.ALLOW

    def test_caution_band_reviews(self, engine: DecisionEngine) -> None:
        decision = engine.preflight("agent-d", ActionContext(amount_usd=1000), _trust(60))
        assert decision.adjusted_score == 50
        assert decision.decision is DecisionOutcome.REVIEW
        assert decision.reason == "Manual review required: adjusted score 50 is in caution band."

    def test_allow(self, engine: DecisionEngine) -> None:
        decision = engine.preflight("agent-d", ActionContext(amount_usd=50), _trust(80))
        assert decision.decision is DecisionOutcome.ALLOW
        assert decision.reason == "Trust score 80 is acceptable for this action."

    def test_poor_behavior_penalizes(self, engine: DecisionEngine) -> None:
        decision = engine.preflight("agent-d", ActionContext(), _trust(60, behavior=30))
        assert decision.policy["behavior_penalty"] == 12
        assert decision.adjusted_score == 48
        assert decision.decision is DecisionOutcome.REVIEW

    def test_excellent_behavior_credits(self, engine: DecisionEngine) -> None:
        decision = engine.preflight("agent-d", ActionContext(), _trust(53, behavior=90))
        assert decision.policy["behavior_credit"] == 3
        assert decision.adjusted_score == 56
        assert decision.decision is DecisionOutcome.ALLOW

    def test_adjusted_score_never_negative(self, engine: DecisionEngine) -> None:
        context = ActionContext(amount_usd=50000, exposes_api_keys=True)
        decision = engine.preflight("agent-d", context, _trust(40, behavior=10))
        assert decision.adjusted_score == 0


class TestSignalQualityGate:
    def test_low_signal_downgrades_allow(self, engine: DecisionEngine) -> None:
        policy = TrustPolicy(min_signal_quality=70)
        decision = engine.preflight("agent-d", ActionContext(), _trust(80, signal=55), policy)
        assert decision.decision is DecisionOutcome.REVIEW
        assert decision.reason == (
            "Manual review required: signal quality 55 is below policy minimum 70."
        )

    def test_gate_never_lifts_a_block(self, engine: DecisionEngine) -> None:
        policy = TrustPolicy(min_signal_quality=70)
        decision = engine.preflight("agent-d", ActionContext(), _trust(20, signal=10), policy)
        assert decision.decision is DecisionOutcome.BLOCK

    def test_gate_disabled_at_zero(self, engine: DecisionEngine) -> None:
        decision = engine.preflight(
            "agent-d", ActionContext(), _trust(80, signal=0), TrustPolicy()
        )
        assert decision.decision is DecisionOutcome.ALLOW

    def test_sufficient_signal_passes(self, engine: DecisionEngine) -> None:
        policy = TrustPolicy(min_signal_quality=50)
        decision = engine.preflight("agent-d", ActionContext(), _trust(80, signal=50), policy)
        assert decision.decision is DecisionOutcome.ALLOW


class TestDecisionShape:
    def test_to_dict(self, engine: DecisionEngine) -> None:
        data = engine.preflight("agent-d", ActionContext(amount_usd=1000), _trust(80)).to_dict()
        assert data["decision"] == "allow"
        assert set(data["trust"]) == {  # type: ignore[arg-type]
            "agent_id",
            "score",
            "level",
            "explanation",
            "behavior_score",
            "behavior_level",
            "signal_quality",
            "signal_quality_level",
            "severe_negative_30d",
        }
        policy = data["policy"]
        assert policy["adjusted_score"] == 70  # type: ignore[index]
        assert policy["thresholds"] == {  # type: ignore[index]
            "block_below": 35,
            "review_below": 55,
            "min_signal_quality": 0.0,
        }
