"""ReputationEvent — a single reported event about an agent.

Events are immutable once ledgered. ``ReputationEvent.from_dict`` performs
the caller-level validation (agent_id, event_type and kind are required,
``occurred_at`` must parse) and normalizes the optional fields.
"""
from __future__ import annotations

import datetime
import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

MAX_DETAILS_LENGTH = 300
MAX_EXTERNAL_ID_LENGTH = 120


class EventKind(str, Enum):
    """Polarity of a reported event."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class EventValidationError(ValueError):
    """Raised when an event payload is missing required fields or malformed."""


def _utcnow_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def normalize_key(value: object) -> str:
    """Trim and lower-case a free-form identifier. None maps to ''."""
    if value is None:
        return ""
    return str(value).strip().lower()


def _optional_key(value: object) -> Optional[str]:
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    return normalized or None


def parse_timestamp(value: object) -> Optional[datetime.datetime]:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Returns None for anything that does not parse. Naive timestamps are
    taken to be UTC.
    """
    if isinstance(value, datetime.datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.datetime.fromisoformat(text)
        except (ValueError, OverflowError):
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    # Offsets at the edges of the datetime range cannot shift into UTC.
    try:
        return parsed.astimezone(datetime.timezone.utc)
    except (ValueError, OverflowError):
        return None


def _confidence(value: object) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


@dataclass(frozen=True)
class ReputationEvent:
    """A reported event about an agent.

    Parameters
    ----------
    agent_id:
        Normalized (trimmed, lower-cased) agent identifier.
    kind:
        Event polarity.
    event_type:
        Normalized key into the weight tables.
    details:
        Optional free text.
    source:
        Optional origin label such as ``"stripe"``.
    source_type:
        Verification class of the source (``verified_integration``,
        ``self_reported``, ``unverified``, ``manual`` or anything else).
    confidence:
        Reporter confidence in [0, 1]. None means full confidence.
    external_event_id:
        Optional idempotency key from the upstream source.
    created_at:
        ISO-8601 timestamp used for decay.
    id:
        Opaque unique identifier.
    """

    agent_id: str
    kind: EventKind
    event_type: str
    details: Optional[str] = None
    source: Optional[str] = None
    source_type: Optional[str] = None
    confidence: Optional[float] = None
    external_event_id: Optional[str] = None
    created_at: str = field(default_factory=_utcnow_iso)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __post_init__(self) -> None:
        if not isinstance(self.kind, EventKind):
            try:
                kind = EventKind(normalize_key(self.kind))
            except ValueError:
                raise EventValidationError(
                    "kind is required and must be one of: positive, neutral, negative."
                ) from None
            object.__setattr__(self, "kind", kind)
        object.__setattr__(self, "agent_id", normalize_key(self.agent_id))
        object.__setattr__(self, "event_type", normalize_key(self.event_type))

    @property
    def is_verified(self) -> bool:
        """True when the event came from a verified integration."""
        return normalize_key(self.source_type) == "verified_integration"

    @classmethod
    def from_dict(
        cls,
        payload: Mapping[str, object],
        default_confidence: Optional[float] = None,
    ) -> "ReputationEvent":
        """Validate and normalize a raw event payload.

        ``occurred_at`` (or ``created_at``) is optional; when absent the event
        is stamped with the current time.

        Raises
        ------
        EventValidationError
            If agent_id or event_type is empty, kind is not one of
            positive/neutral/negative, or the timestamp does not parse.
        """
        agent_id = normalize_key(payload.get("agent_id"))
        if not agent_id:
            raise EventValidationError("agent_id is required.")
        event_type = normalize_key(payload.get("event_type"))
        if not event_type:
            raise EventValidationError("event_type is required.")
        try:
            kind = EventKind(normalize_key(payload.get("kind")))
        except ValueError:
            raise EventValidationError(
                "kind is required and must be one of: positive, neutral, negative."
            ) from None

        raw_timestamp = payload.get("occurred_at", payload.get("created_at"))
        if raw_timestamp in (None, ""):
            created_at = _utcnow_iso()
        else:
            parsed = parse_timestamp(raw_timestamp)
            if parsed is None:
                raise EventValidationError("occurred_at must be valid ISO-8601 if provided.")
            created_at = parsed.isoformat()

        details = payload.get("details")
        external_id = payload.get("external_event_id")
        confidence = _confidence(payload.get("confidence"))
        if confidence is None:
            confidence = default_confidence

        kwargs: dict[str, object] = {}
        if payload.get("id"):
            kwargs["id"] = str(payload["id"])

        return cls(
            agent_id=agent_id,
            kind=kind,
            event_type=event_type,
            details=details.strip()[:MAX_DETAILS_LENGTH] if isinstance(details, str) else None,
            source=_optional_key(payload.get("source")),
            source_type=_optional_key(payload.get("source_type")),
            confidence=confidence,
            external_event_id=(
                external_id.strip()[:MAX_EXTERNAL_ID_LENGTH] or None
                if isinstance(external_id, str)
                else None
            ),
            created_at=created_at,
            **kwargs,  # type: ignore[arg-type]
        )

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary."""
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "kind": self.kind.value,
            "event_type": self.event_type,
            "details": self.details,
            "source": self.source,
            "source_type": self.source_type,
            "confidence": self.confidence,
            "external_event_id": self.external_event_id,
            "created_at": self.created_at,
        }


__all__ = [
    "EventKind",
    "EventValidationError",
    "ReputationEvent",
    "normalize_key",
    "parse_timestamp",
]
