"""Route handler functions for the claw-trust HTTP server.

Each function accepts the tenant (taken from the ``X-Api-Key`` header) and
parsed request data and returns a tuple of (status_code, response_dict).
The HTTP handler in app.py calls these functions and serializes the results
to JSON.
"""
from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from claw_trust import __version__
from claw_trust.ledger.event import EventValidationError
from claw_trust.ledger.store import DuplicateEventError
from claw_trust.policy.store import PolicyValidationError
from claw_trust.server.models import (
    DecisionLogResponse,
    ErrorResponse,
    EventRecordedResponse,
    HealthResponse,
    PreflightRequest,
    RecordEventRequest,
)
from claw_trust.service import TrustService

DEFAULT_DECISION_LIMIT = 200
MAX_DECISION_LIMIT = 2000

# Module-level shared state
_service: TrustService = TrustService()


def reset_state(service: Optional[TrustService] = None) -> None:
    """Reset shared state — used in tests and for clean restarts."""
    global _service
    _service = service if service is not None else TrustService()


def get_service() -> TrustService:
    return _service


def _error(status: int, error: str, detail: str = "") -> tuple[int, dict[str, object]]:
    return status, ErrorResponse(error=error, detail=detail).model_dump()


def _missing_tenant() -> tuple[int, dict[str, object]]:
    return _error(401, "Unauthorized", "X-Api-Key header is required.")


def handle_record_event(tenant: str, body: dict[str, object]) -> tuple[int, dict[str, object]]:
    """Handle POST /events."""
    if not tenant:
        return _missing_tenant()
    try:
        request = RecordEventRequest.model_validate(body)
    except ValidationError as exc:
        return _error(422, "Validation error", str(exc))

    try:
        recorded = _service.record_event(tenant, request.model_dump(exclude_none=True))
    except EventValidationError as exc:
        return _error(400, "Bad request", str(exc))
    except DuplicateEventError as exc:
        return _error(409, "Conflict", str(exc))

    response = EventRecordedResponse.model_validate(recorded.to_dict())
    return 201, response.model_dump()


def handle_get_score(
    tenant: str,
    agent_id: str,
    include_trace: bool = False,
    trace_limit: Optional[int] = None,
) -> tuple[int, dict[str, object]]:
    """Handle GET /score/{agent_id}."""
    if not tenant:
        return _missing_tenant()
    try:
        result = _service.get_score(
            tenant, agent_id, include_trace=include_trace, trace_limit=trace_limit
        )
    except EventValidationError as exc:
        return _error(400, "Bad request", str(exc))
    return 200, result.to_dict()


def handle_preflight(tenant: str, body: dict[str, object]) -> tuple[int, dict[str, object]]:
    """Handle POST /preflight."""
    if not tenant:
        return _missing_tenant()
    try:
        request = PreflightRequest.model_validate(body)
    except ValidationError as exc:
        return _error(422, "Validation error", str(exc))
    try:
        decision = _service.preflight(tenant, request.model_dump())
    except EventValidationError as exc:
        return _error(400, "Bad request", str(exc))
    return 200, decision.to_dict()


def handle_get_policy(tenant: str) -> tuple[int, dict[str, object]]:
    """Handle GET /policy."""
    if not tenant:
        return _missing_tenant()
    return 200, _service.get_policy(tenant).to_dict()


def handle_set_policy(tenant: str, body: dict[str, object]) -> tuple[int, dict[str, object]]:
    """Handle PUT /policy (field-by-field merge)."""
    if not tenant:
        return _missing_tenant()
    try:
        policy = _service.set_policy(tenant, body)
    except PolicyValidationError as exc:
        return _error(400, "Bad request", str(exc))
    return 200, policy.to_dict()


def handle_reset_policy(tenant: str) -> tuple[int, dict[str, object]]:
    """Handle DELETE /policy."""
    if not tenant:
        return _missing_tenant()
    return 200, _service.reset_policy(tenant).to_dict()


def handle_list_presets() -> tuple[int, dict[str, object]]:
    """Handle GET /policy/presets."""
    return 200, _service.list_policy_presets()


def handle_apply_preset(tenant: str, name: str) -> tuple[int, dict[str, object]]:
    """Handle POST /policy/presets/{name}."""
    if not tenant:
        return _missing_tenant()
    try:
        policy = _service.apply_policy_preset(tenant, name)
    except PolicyValidationError as exc:
        return _error(400, "Bad request", str(exc))
    return 200, policy.to_dict()


def handle_decisions(tenant: str, limit: Optional[str] = None) -> tuple[int, dict[str, object]]:
    """Handle GET /decisions."""
    if not tenant:
        return _missing_tenant()
    try:
        parsed = int(limit) if limit else DEFAULT_DECISION_LIMIT
    except ValueError:
        parsed = DEFAULT_DECISION_LIMIT
    if parsed <= 0:
        parsed = DEFAULT_DECISION_LIMIT
    parsed = min(parsed, MAX_DECISION_LIMIT)
    logs = _service.decision_log(tenant, limit=parsed)
    return 200, DecisionLogResponse(count=len(logs), limit=parsed, logs=logs).model_dump()


def handle_health() -> tuple[int, dict[str, object]]:
    """Handle GET /health."""
    response = HealthResponse(version=__version__, event_count=len(_service.ledger))
    return 200, response.model_dump()


__all__ = [
    "get_service",
    "handle_apply_preset",
    "handle_decisions",
    "handle_get_policy",
    "handle_get_score",
    "handle_health",
    "handle_list_presets",
    "handle_preflight",
    "handle_record_event",
    "handle_reset_policy",
    "handle_set_policy",
    "reset_state",
]
