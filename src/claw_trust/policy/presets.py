"""Named policy bundles an operator can apply wholesale."""
from __future__ import annotations

import copy
from typing import Optional

from claw_trust.policy.model import TrustPolicy

RECOMMENDED_PRESET = "balanced"

POLICY_PRESETS: dict[str, dict[str, object]] = {
    "open": {
        "min_confidence": 0.0,
        "allowed_sources": [],
        "source_type_multipliers": {
            "verified_integration": 1.0,
            "self_reported": 0.75,
            "unverified": 0.6,
            "manual": 1.0,
        },
        "event_overrides": {},
        "require_verified_sensitive": False,
        "min_signal_quality": 0.0,
        "preset_description": "Accept broad signals. Best for fast onboarding and experimentation.",
    },
    "balanced": {
        "min_confidence": 0.35,
        "allowed_sources": [],
        "source_type_multipliers": {
            "verified_integration": 1.0,
            "self_reported": 0.55,
            "unverified": 0.35,
            "manual": 0.75,
        },
        "event_overrides": {},
        "require_verified_sensitive": True,
        "min_signal_quality": 50.0,
        "preset_description": (
            "Default production posture: verified signals favored, "
            "low-confidence noise reduced."
        ),
    },
    "strict": {
        "min_confidence": 0.75,
        "allowed_sources": [],
        "source_type_multipliers": {
            "verified_integration": 1.0,
            "self_reported": 0.2,
            "unverified": 0.0,
            "manual": 0.4,
        },
        "event_overrides": {},
        "require_verified_sensitive": True,
        "min_signal_quality": 70.0,
        "preset_description": (
            "High-assurance mode: only high-confidence signals have meaningful impact."
        ),
    },
}


def preset_policy(name: str) -> Optional[TrustPolicy]:
    """Build a fresh TrustPolicy for preset *name*, or None if unknown."""
    bundle = POLICY_PRESETS.get(name.strip().lower())
    if bundle is None:
        return None
    return TrustPolicy.model_validate(
        {**copy.deepcopy(bundle), "preset": name.strip().lower()}
    )


__all__ = ["POLICY_PRESETS", "RECOMMENDED_PRESET", "preset_policy"]
