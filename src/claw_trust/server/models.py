"""Pydantic request/response models for the claw-trust HTTP server."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, StrictBool


class RecordEventRequest(BaseModel):
    """Request body for POST /events."""

    agent_id: str
    kind: str
    event_type: str
    details: Optional[str] = None
    source: Optional[str] = None
    source_type: Optional[str] = None
    confidence: Optional[float] = None
    external_event_id: Optional[str] = None
    occurred_at: Optional[str] = None


class PreflightRequest(BaseModel):
    """Request body for POST /preflight."""

    agent_id: str
    action_type: str = "preflight"
    amount_usd: float = 0.0
    new_payee: StrictBool = False
    first_time_counterparty: StrictBool = False
    high_privilege_action: StrictBool = False
    exposes_api_keys: StrictBool = False


class ScoreSummary(BaseModel):
    """Compact score returned after recording an event."""

    value: int
    level: str
    explanation: str


class EventRecordedResponse(BaseModel):
    """Response body for POST /events."""

    event: dict[str, object]
    previous_score: int
    score: ScoreSummary


class DecisionLogResponse(BaseModel):
    """Response body for GET /decisions."""

    count: int
    limit: int
    logs: list[dict[str, object]] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = "ok"
    service: str = "claw-trust"
    version: str = "0.1.0"
    event_count: int = 0


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str = ""


__all__ = [
    "DecisionLogResponse",
    "ErrorResponse",
    "EventRecordedResponse",
    "HealthResponse",
    "PreflightRequest",
    "RecordEventRequest",
    "ScoreSummary",
]
