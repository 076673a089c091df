"""Per-tenant scoring policy: model, presets, evaluation and storage.

A policy decides which events are admitted into trust scoring and with
what multiplier. Evaluation is a first-match-wins cascade whose outcome is
either inclusion (with source and event multipliers) or an
:class:`ExclusionReason`.
"""
from __future__ import annotations

from claw_trust.policy.evaluation import PolicyEffect, evaluate_policy, is_sensitive
from claw_trust.policy.model import EventOverride, ExclusionReason, TrustPolicy, default_policy
from claw_trust.policy.presets import POLICY_PRESETS, RECOMMENDED_PRESET, preset_policy
from claw_trust.policy.store import PolicyStore, PolicyValidationError, merge_policy

__all__ = [
    "EventOverride",
    "ExclusionReason",
    "POLICY_PRESETS",
    "PolicyEffect",
    "PolicyStore",
    "PolicyValidationError",
    "RECOMMENDED_PRESET",
    "TrustPolicy",
    "default_policy",
    "evaluate_policy",
    "is_sensitive",
    "merge_policy",
    "preset_policy",
]
