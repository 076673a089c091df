"""Tests for claw_trust.ledger — event validation and the tenant-scoped store."""
from __future__ import annotations

import dataclasses
import datetime

import pytest

from claw_trust.ledger.event import (
    EventKind,
    EventValidationError,
    ReputationEvent,
    normalize_key,
    parse_timestamp,
)
from claw_trust.ledger.store import DuplicateEventError, EventLedger


def _payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "agent_id": "Agent-1",
        "kind": "positive",
        "event_type": "Payment_Success",
    }
    payload.update(overrides)
    return payload


# ---------------------------------------------------------------------------
# ReputationEvent
# ---------------------------------------------------------------------------


class TestReputationEventFromDict:
    def test_normalizes_identifiers(self) -> None:
        event = ReputationEvent.from_dict(_payload(source=" Stripe ", source_type="Verified_Integration"))
        assert event.agent_id == "agent-1"
        assert event.event_type == "payment_success"
        assert event.kind is EventKind.POSITIVE
        assert event.source == "stripe"
        assert event.source_type == "verified_integration"
        assert event.is_verified

    @pytest.mark.parametrize(
        ("field", "value", "message"),
        [
            ("agent_id", "  ", "agent_id is required."),
            ("event_type", None, "event_type is required."),
            ("kind", "great", "kind is required"),
            ("kind", None, "kind is required"),
            ("occurred_at", "yesterday", "occurred_at must be valid ISO-8601"),
        ],
    )
    def test_validation_errors(self, field: str, value: object, message: str) -> None:
        with pytest.raises(EventValidationError, match=message):
            ReputationEvent.from_dict(_payload(**{field: value}))

    def test_occurred_at_sets_created_at(self) -> None:
        event = ReputationEvent.from_dict(_payload(occurred_at="2026-01-02T03:04:05Z"))
        assert event.created_at == "2026-01-02T03:04:05+00:00"

    def test_missing_timestamp_defaults_to_now(self) -> None:
        before = datetime.datetime.now(datetime.timezone.utc)
        event = ReputationEvent.from_dict(_payload())
        parsed = parse_timestamp(event.created_at)
        assert parsed is not None
        assert parsed >= before - datetime.timedelta(seconds=1)

    def test_details_and_external_id_truncated(self) -> None:
        event = ReputationEvent.from_dict(
            _payload(details="x" * 500, external_event_id="e" * 200)
        )
        assert event.details is not None and len(event.details) == 300
        assert event.external_event_id is not None and len(event.external_event_id) == 120

    def test_non_numeric_confidence_ignored(self) -> None:
        assert ReputationEvent.from_dict(_payload(confidence="high")).confidence is None
        assert ReputationEvent.from_dict(_payload(confidence=True)).confidence is None

    def test_default_confidence_applies_when_missing(self) -> None:
        event = ReputationEvent.from_dict(_payload(), default_confidence=0.8)
        assert event.confidence == 0.8

    def test_id_preserved(self) -> None:
        assert ReputationEvent.from_dict(_payload(id="abc123")).id == "abc123"

    def test_round_trip(self) -> None:
        event = ReputationEvent.from_dict(_payload(details="ok", confidence=0.5))
        assert ReputationEvent.from_dict(event.to_dict()) == event


class TestReputationEventConstruction:
    def test_string_kind_coerced(self) -> None:
        event = ReputationEvent(agent_id="a", kind="NEGATIVE", event_type="spam_report")  # type: ignore[arg-type]
        assert event.kind is EventKind.NEGATIVE

    def test_invalid_kind_rejected(self) -> None:
        with pytest.raises(EventValidationError):
            ReputationEvent(agent_id="a", kind="bad", event_type="x")  # type: ignore[arg-type]

    def test_event_is_immutable(self) -> None:
        event = ReputationEvent(agent_id="a", kind=EventKind.NEUTRAL, event_type="x")
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.details = "changed"  # type: ignore[misc]

    def test_unique_ids(self) -> None:
        first = ReputationEvent(agent_id="a", kind=EventKind.NEUTRAL, event_type="x")
        second = ReputationEvent(agent_id="a", kind=EventKind.NEUTRAL, event_type="x")
        assert first.id != second.id


class TestHelpers:
    def test_normalize_key(self) -> None:
        assert normalize_key("  MiXeD ") == "mixed"
        assert normalize_key(None) == ""

    def test_parse_timestamp_naive_is_utc(self) -> None:
        parsed = parse_timestamp("2026-01-01T00:00:00")
        assert parsed == datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc)

    def test_parse_timestamp_offset_converted(self) -> None:
        parsed = parse_timestamp("2026-01-01T02:00:00+02:00")
        assert parsed == datetime.datetime(2026, 1, 1, tzinfo=datetime.timezone.utc)

    @pytest.mark.parametrize("value", ["", "not a date", None, 42])
    def test_parse_timestamp_invalid(self, value: object) -> None:
        assert parse_timestamp(value) is None

    @pytest.mark.parametrize(
        "value", ["0001-01-01T00:00:00+01:00", "9999-12-31T23:59:59-01:00"]
    )
    def test_parse_timestamp_out_of_utc_range(self, value: str) -> None:
        assert parse_timestamp(value) is None

    def test_out_of_range_occurred_at_rejected(self) -> None:
        with pytest.raises(EventValidationError):
            ReputationEvent.from_dict(_payload(occurred_at="9999-12-31T23:59:59-01:00"))


# ---------------------------------------------------------------------------
# EventLedger
# ---------------------------------------------------------------------------


@pytest.fixture()
def ledger() -> EventLedger:
    return EventLedger()


class TestEventLedger:
    def test_append_and_read(self, ledger: EventLedger) -> None:
        event = ReputationEvent.from_dict(_payload())
        ledger.append("tenant-a", event)
        assert ledger.events_for("tenant-a", "agent-1") == [event]
        assert len(ledger) == 1

    def test_tenants_are_isolated(self, ledger: EventLedger) -> None:
        ledger.append("tenant-a", ReputationEvent.from_dict(_payload()))
        assert ledger.events_for("tenant-b", "agent-1") == []
        assert ledger.agent_ids("tenant-a") == ["agent-1"]
        assert ledger.agent_ids("tenant-b") == []

    def test_read_returns_snapshot(self, ledger: EventLedger) -> None:
        ledger.append("tenant-a", ReputationEvent.from_dict(_payload()))
        snapshot = ledger.events_for("tenant-a", "agent-1")
        snapshot.clear()
        assert len(ledger.events_for("tenant-a", "agent-1")) == 1

    def test_quick_duplicate_rejected(self, ledger: EventLedger) -> None:
        ledger.append("tenant-a", ReputationEvent.from_dict(_payload(details="same")))
        with pytest.raises(DuplicateEventError, match="too quickly"):
            ledger.append("tenant-a", ReputationEvent.from_dict(_payload(details="same")))

    def test_same_event_for_other_tenant_allowed(self, ledger: EventLedger) -> None:
        ledger.append("tenant-a", ReputationEvent.from_dict(_payload()))
        ledger.append("tenant-b", ReputationEvent.from_dict(_payload()))
        assert len(ledger) == 2

    def test_different_details_not_duplicate(self, ledger: EventLedger) -> None:
        ledger.append("tenant-a", ReputationEvent.from_dict(_payload(details="one")))
        ledger.append("tenant-a", ReputationEvent.from_dict(_payload(details="two")))
        assert len(ledger.events_for("tenant-a", "agent-1")) == 2

    def test_window_can_be_disabled(self) -> None:
        ledger = EventLedger(duplicate_window=0)
        ledger.append("tenant-a", ReputationEvent.from_dict(_payload()))
        ledger.append("tenant-a", ReputationEvent.from_dict(_payload()))
        assert len(ledger) == 2

    def test_external_id_is_idempotent(self) -> None:
        ledger = EventLedger(duplicate_window=0)
        ledger.append(
            "tenant-a",
            ReputationEvent.from_dict(_payload(source="stripe", external_event_id="evt_1")),
        )
        with pytest.raises(DuplicateEventError, match="evt_1"):
            ledger.append(
                "tenant-a",
                ReputationEvent.from_dict(
                    _payload(source="stripe", external_event_id="evt_1", details="retry")
                ),
            )

    def test_external_id_scoped_by_source(self) -> None:
        ledger = EventLedger(duplicate_window=0)
        ledger.append(
            "tenant-a",
            ReputationEvent.from_dict(_payload(source="stripe", external_event_id="evt_1")),
        )
        ledger.append(
            "tenant-a",
            ReputationEvent.from_dict(_payload(source="github", external_event_id="evt_1")),
        )
        assert len(ledger) == 2

    def test_rejected_event_not_stored(self, ledger: EventLedger) -> None:
        ledger.append("tenant-a", ReputationEvent.from_dict(_payload()))
        with pytest.raises(DuplicateEventError):
            ledger.append("tenant-a", ReputationEvent.from_dict(_payload()))
        assert len(ledger) == 1

    def test_restore_round_trip(self) -> None:
        ledger = EventLedger(duplicate_window=0)
        ledger.append(
            "tenant-a",
            ReputationEvent.from_dict(_payload(source="stripe", external_event_id="evt_9")),
        )
        ledger.append("tenant-b", ReputationEvent.from_dict(_payload(agent_id="agent-2")))

        restored = EventLedger()
        assert restored.restore(ledger.to_dict()) == 2
        assert restored.events_for("tenant-a", "agent-1") == ledger.events_for("tenant-a", "agent-1")
        with pytest.raises(DuplicateEventError):
            restored.append(
                "tenant-a",
                ReputationEvent.from_dict(
                    _payload(source="stripe", external_event_id="evt_9", details="again")
                ),
            )
