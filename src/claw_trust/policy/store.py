"""PolicyStore — per-tenant policy storage with strict patch validation.

Merge semantics
---------------
- :meth:`PolicyStore.set_policy` merges a patch onto the current policy
  field by field. ``source_type_multipliers`` and ``event_overrides`` are
  merged key by key, never replaced wholesale.
- :meth:`PolicyStore.apply_preset` replaces the stored policy completely.
- :meth:`PolicyStore.reset_policy` drops the stored policy so the tenant
  falls back to defaults.
"""
from __future__ import annotations

import datetime
import logging
import math
import threading
from typing import Mapping

from claw_trust.ledger.event import normalize_key
from claw_trust.policy.evaluation import clamp
from claw_trust.policy.model import MAX_ALLOWED_SOURCES, EventOverride, TrustPolicy, default_policy
from claw_trust.policy.presets import POLICY_PRESETS, RECOMMENDED_PRESET, preset_policy

logger = logging.getLogger(__name__)


class PolicyValidationError(ValueError):
    """Raised when a policy patch or preset name is malformed."""


# ------------------------------------------------------------------
# Patch validation
# ------------------------------------------------------------------


def _number(value: object, message: str) -> float:
    if isinstance(value, bool):
        raise PolicyValidationError(message)
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise PolicyValidationError(message) from None
    if not math.isfinite(number):
        raise PolicyValidationError(message)
    return number


def _allowed_sources(value: object) -> list[str]:
    if not isinstance(value, (list, tuple)):
        raise PolicyValidationError("allowed_sources must be a list of strings.")
    seen: list[str] = []
    for item in value:
        source = normalize_key(item)
        if source and source not in seen:
            seen.append(source)
    return seen[:MAX_ALLOWED_SOURCES]


def _source_type_multipliers(value: object) -> dict[str, float]:
    if not isinstance(value, Mapping):
        raise PolicyValidationError("source_type_multipliers must be an object.")
    output: dict[str, float] = {}
    for raw_key, raw_value in value.items():
        key = normalize_key(raw_key)
        if not key:
            continue
        multiplier = _number(raw_value, f"source_type_multipliers.{key} must be a number.")
        output[key] = clamp(multiplier, 0.0, 2.0)
    return output


def _event_overrides(value: object) -> dict[str, EventOverride]:
    if not isinstance(value, Mapping):
        raise PolicyValidationError("event_overrides must be an object.")
    output: dict[str, EventOverride] = {}
    for raw_event_type, raw_override in value.items():
        event_type = normalize_key(raw_event_type)
        if not event_type:
            continue
        if not isinstance(raw_override, Mapping):
            raise PolicyValidationError(f"event_overrides.{event_type} must be an object.")
        override = EventOverride()
        if raw_override.get("enabled") is not None:
            enabled = raw_override["enabled"]
            if not isinstance(enabled, bool):
                raise PolicyValidationError(
                    f"event_overrides.{event_type}.enabled must be boolean."
                )
            override.enabled = enabled
        if raw_override.get("multiplier") is not None:
            multiplier = _number(
                raw_override["multiplier"],
                f"event_overrides.{event_type}.multiplier must be a number.",
            )
            override.multiplier = clamp(multiplier, 0.0, 3.0)
        output[event_type] = override
    return output


def merge_policy(current: TrustPolicy, patch: object) -> TrustPolicy:
    """Validate *patch* and merge it onto *current*, returning a new policy.

    Raises
    ------
    PolicyValidationError
        If the patch is not a mapping or any field has the wrong type.
    """
    if not isinstance(patch, Mapping):
        raise PolicyValidationError("Policy payload must be a JSON object.")

    updates: dict[str, object] = {}

    if patch.get("min_confidence") is not None:
        value = _number(
            patch["min_confidence"], "min_confidence must be a number between 0 and 1."
        )
        updates["min_confidence"] = clamp(value, 0.0, 1.0)

    if patch.get("min_signal_quality") is not None:
        value = _number(
            patch["min_signal_quality"], "min_signal_quality must be a number between 0 and 100."
        )
        updates["min_signal_quality"] = clamp(value, 0.0, 100.0)

    if patch.get("allowed_sources") is not None:
        updates["allowed_sources"] = _allowed_sources(patch["allowed_sources"])

    if patch.get("source_type_multipliers") is not None:
        updates["source_type_multipliers"] = {
            **current.source_type_multipliers,
            **_source_type_multipliers(patch["source_type_multipliers"]),
        }

    if patch.get("event_overrides") is not None:
        merged = {k: v.model_copy() for k, v in current.event_overrides.items()}
        merged.update(_event_overrides(patch["event_overrides"]))
        updates["event_overrides"] = merged

    if patch.get("require_verified_sensitive") is not None:
        flag = patch["require_verified_sensitive"]
        if not isinstance(flag, bool):
            raise PolicyValidationError("require_verified_sensitive must be boolean.")
        updates["require_verified_sensitive"] = flag

    updates["updated_at"] = datetime.datetime.now(datetime.timezone.utc).isoformat()
    return current.model_copy(update=updates, deep=True)


# ------------------------------------------------------------------
# Store
# ------------------------------------------------------------------


class PolicyStore:
    """Thread-safe in-memory policy store keyed by tenant.

    Tenants without a stored policy get :func:`default_policy`. Every read
    returns a deep copy, so callers can never mutate stored state.
    """

    def __init__(self) -> None:
        self._policies: dict[str, TrustPolicy] = {}
        self._lock = threading.Lock()

    def get_policy(self, tenant: str) -> TrustPolicy:
        """Return the tenant's policy, or defaults if none is stored."""
        with self._lock:
            stored = self._policies.get(tenant)
            return stored.model_copy(deep=True) if stored is not None else default_policy()

    def set_policy(self, tenant: str, patch: Mapping[str, object]) -> TrustPolicy:
        """Merge *patch* onto the tenant's current policy and store it.

        Raises
        ------
        PolicyValidationError
            If the patch is malformed. Nothing is stored in that case.
        """
        with self._lock:
            current = self._policies.get(tenant) or default_policy()
            updated = merge_policy(current, patch)
            self._policies[tenant] = updated
        logger.info("Policy updated for tenant %s", tenant)
        return updated.model_copy(deep=True)

    def apply_preset(self, tenant: str, name: str) -> TrustPolicy:
        """Replace the tenant's policy with preset *name*.

        Raises
        ------
        PolicyValidationError
            If *name* is not a known preset.
        """
        policy = preset_policy(str(name or ""))
        if policy is None:
            supported = ", ".join(POLICY_PRESETS)
            raise PolicyValidationError(f"Unknown preset. Supported presets: {supported}.")
        policy.updated_at = datetime.datetime.now(datetime.timezone.utc).isoformat()
        with self._lock:
            self._policies[tenant] = policy
        logger.info("Preset %r applied for tenant %s", policy.preset, tenant)
        return policy.model_copy(deep=True)

    def reset_policy(self, tenant: str) -> TrustPolicy:
        """Drop the tenant's stored policy and return the defaults."""
        with self._lock:
            self._policies.pop(tenant, None)
        logger.info("Policy reset for tenant %s", tenant)
        return default_policy()

    @staticmethod
    def list_presets() -> dict[str, object]:
        """Return every preset as a policy dict plus the recommended name."""
        presets: dict[str, object] = {}
        for name in POLICY_PRESETS:
            policy = preset_policy(name)
            if policy is not None:
                presets[name] = policy.to_dict()
        return {"presets": presets, "recommended": RECOMMENDED_PRESET}

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, dict[str, object]]:
        """Serialize every stored policy keyed by tenant."""
        with self._lock:
            return {tenant: policy.to_dict() for tenant, policy in self._policies.items()}

    def restore(self, data: Mapping[str, Mapping[str, object]]) -> None:
        """Load policies produced by :meth:`to_dict`."""
        with self._lock:
            for tenant, raw in data.items():
                self._policies[tenant] = TrustPolicy.model_validate(raw)


__all__ = ["MAX_ALLOWED_SOURCES", "PolicyStore", "PolicyValidationError", "merge_policy"]
