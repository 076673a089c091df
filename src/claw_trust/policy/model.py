"""TrustPolicy — per-tenant configuration gating which events count.

Policies are plain data merged onto defaults. Operators either apply a
named preset wholesale or patch individual fields through
:meth:`claw_trust.policy.store.PolicyStore.set_policy`.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from claw_trust.config import DEFAULT_SOURCE_TYPE_FACTORS
from claw_trust.ledger.event import normalize_key

MAX_ALLOWED_SOURCES = 100


class ExclusionReason(str, Enum):
    """Why a policy kept an event out of trust scoring.

    Members are listed in evaluation order; the first matching check wins.
    """

    EVENT_OVERRIDE_DISABLED = "event_override_disabled"
    UNVERIFIED_SENSITIVE_EVENT = "unverified_sensitive_event"
    BELOW_MIN_CONFIDENCE = "below_min_confidence"
    SOURCE_NOT_ALLOWED = "source_not_allowed"


class EventOverride(BaseModel):
    """Per-event-type override.

    Parameters
    ----------
    enabled:
        ``False`` excludes the event type from trust scoring entirely.
    multiplier:
        Extra multiplier in [0, 3] applied to the event's contribution.
    """

    enabled: Optional[bool] = None
    multiplier: Optional[float] = Field(default=None, ge=0.0, le=3.0)

    def to_dict(self) -> dict[str, object]:
        """Serialize, omitting unset fields."""
        return self.model_dump(exclude_none=True)


class TrustPolicy(BaseModel):
    """Configurable per-tenant scoring policy.

    Parameters
    ----------
    min_confidence:
        Events with confidence below this value are excluded.
    allowed_sources:
        Allowed ``source`` labels. Empty means any source.
    source_type_multipliers:
        Source-trust factor per source type, in [0, 2].
    event_overrides:
        Per-event-type overrides keyed by normalized event type.
    require_verified_sensitive:
        When True, sensitive event types only count if they come from a
        verified integration.
    min_signal_quality:
        Preflight gate: decisions are forced to review when the signal
        quality score is below this value.
    preset:
        Name of the preset this policy was created from, if any.
    preset_description:
        Human-readable description of that preset.
    updated_at:
        ISO-8601 timestamp of the last change.
    """

    min_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    allowed_sources: list[str] = Field(default_factory=list)
    source_type_multipliers: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_SOURCE_TYPE_FACTORS)
    )
    event_overrides: dict[str, EventOverride] = Field(default_factory=dict)
    require_verified_sensitive: bool = False
    min_signal_quality: float = Field(default=0.0, ge=0.0, le=100.0)
    preset: Optional[str] = None
    preset_description: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("allowed_sources")
    @classmethod
    def normalize_allowed_sources(cls, value: list[str]) -> list[str]:
        """Trim, lower-case and de-duplicate source labels, keeping order."""
        seen: list[str] = []
        for item in value:
            source = normalize_key(item)
            if source and source not in seen:
                seen.append(source)
        return seen[:MAX_ALLOWED_SOURCES]

    @field_validator("source_type_multipliers", "event_overrides")
    @classmethod
    def normalize_keys(cls, value: dict) -> dict:
        """Key by normalized source or event type, dropping blank keys."""
        return {normalize_key(key): item for key, item in value.items() if normalize_key(key)}

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        data = self.model_dump(exclude={"event_overrides"})
        data["event_overrides"] = {
            event_type: override.to_dict()
            for event_type, override in self.event_overrides.items()
        }
        return data


def default_policy() -> TrustPolicy:
    """Return the policy used for tenants that have none stored."""
    return TrustPolicy()


__all__ = [
    "EventOverride",
    "ExclusionReason",
    "MAX_ALLOWED_SOURCES",
    "TrustPolicy",
    "default_policy",
]
