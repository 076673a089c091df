"""Tests for claw_trust.policy.evaluation — inclusion, exclusion and multipliers."""
from __future__ import annotations

import pytest

from claw_trust.ledger.event import ReputationEvent
from claw_trust.policy.evaluation import default_source_factor, evaluate_policy, is_sensitive
from claw_trust.policy.model import EventOverride, ExclusionReason, TrustPolicy


def _event(event_type: str = "payment_success", **kwargs: object) -> ReputationEvent:
    return ReputationEvent(
        agent_id="agent-p",
        kind="positive",  # type: ignore[arg-type]
        event_type=event_type,
        **kwargs,  # type: ignore[arg-type]
    )


class TestInclusion:
    def test_default_policy_includes_everything(self) -> None:
        effect = evaluate_policy(_event(source_type="self_reported"), TrustPolicy(), 1.0)
        assert effect.included is True
        assert effect.reason is None
        assert effect.source_factor == pytest.approx(0.75)
        assert effect.event_multiplier == 1.0

    def test_unknown_source_type_uses_default_table(self) -> None:
        effect = evaluate_policy(_event(source_type="carrier_pigeon"), TrustPolicy(), 1.0)
        assert effect.source_factor == 1.0

    def test_policy_multiplier_overrides_default(self) -> None:
        policy = TrustPolicy(source_type_multipliers={"self_reported": 1.5})
        effect = evaluate_policy(_event(source_type="self_reported"), policy, 1.0)
        assert effect.source_factor == pytest.approx(1.5)

    def test_policy_multiplier_clamped_to_two(self) -> None:
        policy = TrustPolicy(source_type_multipliers={"manual": 9.0})
        effect = evaluate_policy(_event(source_type="manual"), policy, 1.0)
        assert effect.source_factor == 2.0

    def test_event_override_multiplier(self) -> None:
        policy = TrustPolicy(event_overrides={"payment_success": EventOverride(multiplier=2.5)})
        effect = evaluate_policy(_event(), policy, 1.0)
        assert effect.included is True
        assert effect.event_multiplier == pytest.approx(2.5)

    def test_enabled_override_does_not_exclude(self) -> None:
        policy = TrustPolicy(event_overrides={"payment_success": EventOverride(enabled=True)})
        assert evaluate_policy(_event(), policy, 1.0).included is True

    def test_allowed_source_matches_case_insensitively(self) -> None:
        policy = TrustPolicy(allowed_sources=["stripe"])
        effect = evaluate_policy(_event(source="Stripe"), policy, 1.0)
        assert effect.included is True

    def test_constructed_policy_normalizes_allowed_sources(self) -> None:
        policy = TrustPolicy(allowed_sources=[" Stripe ", "STRIPE", ""])
        assert policy.allowed_sources == ["stripe"]
        effect = evaluate_policy(_event(source="stripe"), policy, 1.0)
        assert effect.included is True

    def test_constructed_policy_normalizes_map_keys(self) -> None:
        policy = TrustPolicy(
            source_type_multipliers={"Self_Reported": 1.5},
            event_overrides={" Payment_Success ": EventOverride(multiplier=2.0)},
        )
        effect = evaluate_policy(_event(source_type="self_reported"), policy, 1.0)
        assert effect.source_factor == pytest.approx(1.5)
        assert effect.event_multiplier == pytest.approx(2.0)


class TestExclusion:
    def test_disabled_override(self) -> None:
        policy = TrustPolicy(event_overrides={"payment_success": EventOverride(enabled=False)})
        effect = evaluate_policy(_event(), policy, 1.0)
        assert effect.included is False
        assert effect.reason is ExclusionReason.EVENT_OVERRIDE_DISABLED
        assert effect.source_factor is None

    def test_unverified_sensitive(self) -> None:
        policy = TrustPolicy(require_verified_sensitive=True)
        effect = evaluate_policy(_event(source_type="manual"), policy, 1.0)
        assert effect.reason is ExclusionReason.UNVERIFIED_SENSITIVE_EVENT

    def test_verified_sensitive_is_included(self) -> None:
        policy = TrustPolicy(require_verified_sensitive=True)
        effect = evaluate_policy(_event(source_type="verified_integration"), policy, 1.0)
        assert effect.included is True

    def test_non_sensitive_unverified_is_included(self) -> None:
        policy = TrustPolicy(require_verified_sensitive=True)
        effect = evaluate_policy(
            _event("completed_task_on_time", source_type="unverified"), policy, 1.0
        )
        assert effect.included is True

    def test_below_min_confidence(self) -> None:
        policy = TrustPolicy(min_confidence=0.5)
        effect = evaluate_policy(_event(), policy, 0.49)
        assert effect.reason is ExclusionReason.BELOW_MIN_CONFIDENCE

    def test_confidence_equal_to_minimum_is_included(self) -> None:
        policy = TrustPolicy(min_confidence=0.5)
        assert evaluate_policy(_event(), policy, 0.5).included is True

    def test_source_not_allowed(self) -> None:
        policy = TrustPolicy(allowed_sources=["stripe"])
        effect = evaluate_policy(_event(source="paypal"), policy, 1.0)
        assert effect.reason is ExclusionReason.SOURCE_NOT_ALLOWED

    def test_missing_source_not_allowed_when_list_set(self) -> None:
        policy = TrustPolicy(allowed_sources=["stripe"])
        effect = evaluate_policy(_event(), policy, 1.0)
        assert effect.reason is ExclusionReason.SOURCE_NOT_ALLOWED


class TestPrecedence:
    def test_override_beats_every_other_reason(self) -> None:
        policy = TrustPolicy(
            min_confidence=0.9,
            allowed_sources=["stripe"],
            require_verified_sensitive=True,
            event_overrides={"payment_success": EventOverride(enabled=False)},
        )
        effect = evaluate_policy(_event(source="paypal", source_type="manual"), policy, 0.1)
        assert effect.reason is ExclusionReason.EVENT_OVERRIDE_DISABLED

    def test_verification_beats_confidence(self) -> None:
        policy = TrustPolicy(min_confidence=0.9, require_verified_sensitive=True)
        effect = evaluate_policy(_event(source_type="manual"), policy, 0.1)
        assert effect.reason is ExclusionReason.UNVERIFIED_SENSITIVE_EVENT

    def test_confidence_beats_source(self) -> None:
        policy = TrustPolicy(min_confidence=0.9, allowed_sources=["stripe"])
        effect = evaluate_policy(_event(source="unknown"), policy, 0.2)
        assert effect.reason is ExclusionReason.BELOW_MIN_CONFIDENCE


class TestHelpers:
    @pytest.mark.parametrize(
        "event_type",
        [
            "payment_success",
            "failed_payment",
            "security_flag",
            "abuse_report",
            "api_key_leak",
            "impersonation_report",
            "unresolved_dispute",
        ],
    )
    def test_sensitive_types(self, event_type: str) -> None:
        assert is_sensitive(event_type)
        assert is_sensitive(event_type.upper())

    def test_non_sensitive(self) -> None:
        assert not is_sensitive("spam_report")
        assert not is_sensitive("completed_task_on_time")

    def test_default_source_factor_table(self) -> None:
        assert default_source_factor("verified_integration") == 1.0
        assert default_source_factor("self_reported") == 0.75
        assert default_source_factor("unverified") == 0.6
        assert default_source_factor("manual") == 1.0
        assert default_source_factor(None) == 1.0
