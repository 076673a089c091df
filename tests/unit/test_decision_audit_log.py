"""Tests for claw_trust.audit.decision_log — JSONL decision audit trail."""
from __future__ import annotations

import csv
import io
import json
from pathlib import Path

import pytest

from claw_trust.audit.decision_log import (
    CSV_COLUMNS,
    DecisionAuditEntry,
    DecisionAuditLogger,
    entries_to_csv,
)
from claw_trust.decision.preflight import ActionContext, Decision, DecisionOutcome


def _entry(agent_id: str = "agent-1", tenant: str = "tenant-a", **kwargs: object) -> DecisionAuditEntry:
    return DecisionAuditEntry(
        action="payment",
        agent_id=agent_id,
        outcome="allow",
        score=72,
        reason="Trust score 72 is acceptable for this action.",
        tenant=tenant,
        **kwargs,  # type: ignore[arg-type]
    )


@pytest.fixture()
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "audit" / "decisions.jsonl"


class TestFileLogger:
    def test_creates_parent_directory(self, log_path: Path) -> None:
        DecisionAuditLogger(log_path=log_path)
        assert log_path.parent.exists()

    def test_appends_one_json_line_per_entry(self, log_path: Path) -> None:
        logger = DecisionAuditLogger(log_path=log_path)
        logger.log(_entry())
        logger.log(_entry(agent_id="agent-2"))
        lines = log_path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert json.loads(lines[1])["agent_id"] == "agent-2"

    def test_read_log_newest_first(self, log_path: Path) -> None:
        logger = DecisionAuditLogger(log_path=log_path)
        for index in range(3):
            logger.log(_entry(agent_id=f"agent-{index}"))
        entries = logger.read_log()
        assert [e["agent_id"] for e in entries] == ["agent-2", "agent-1", "agent-0"]

    def test_read_log_limit_and_tenant(self, log_path: Path) -> None:
        logger = DecisionAuditLogger(log_path=log_path)
        logger.log(_entry(tenant="tenant-a"))
        logger.log(_entry(tenant="tenant-b"))
        logger.log(_entry(tenant="tenant-a", agent_id="agent-9"))
        assert len(logger.read_log(tenant="tenant-a")) == 2
        assert logger.read_log(limit=1, tenant="tenant-a")[0]["agent_id"] == "agent-9"

    def test_corrupt_lines_skipped(self, log_path: Path) -> None:
        logger = DecisionAuditLogger(log_path=log_path)
        logger.log(_entry())
        with log_path.open("a", encoding="utf-8") as fh:
            fh.write("not json\n\n")
        assert len(logger.read_log()) == 1

    def test_missing_file_reads_empty(self, log_path: Path) -> None:
        assert DecisionAuditLogger(log_path=log_path).read_log() == []


class TestMemoryLogger:
    def test_buffers_without_path(self) -> None:
        logger = DecisionAuditLogger()
        logger.log(_entry())
        assert len(logger.read_log()) == 1

    def test_buffer_bounded(self) -> None:
        logger = DecisionAuditLogger(max_buffered=2)
        for index in range(5):
            logger.log(_entry(agent_id=f"agent-{index}"))
        assert [e["agent_id"] for e in logger.read_log()] == ["agent-4", "agent-3"]


class TestLogDecision:
    def test_records_context_and_scores(self) -> None:
        logger = DecisionAuditLogger()
        decision = Decision(
            agent_id="agent-1",
            decision=DecisionOutcome.REVIEW,
            reason="Manual review required: adjusted score 50 is in caution band.",
            trust={"score": 60},
            policy={"adjusted_score": 50, "risk_penalty": 10},
        )
        context = ActionContext(amount_usd=1000, action_type="payment")
        entry = logger.log_decision(decision, context, tenant="tenant-a")
        assert entry.outcome == "review"
        assert entry.score == 50
        assert entry.action == "payment"
        stored = logger.read_log()[0]
        assert stored["tenant"] == "tenant-a"
        assert stored["metadata"]["trust_score"] == 60  # type: ignore[index]
        assert stored["metadata"]["context"]["amount_usd"] == 1000  # type: ignore[index]


class TestCsvExport:
    def test_header_and_rows(self) -> None:
        entries = [_entry().to_dict(), _entry(agent_id="agent-2").to_dict()]
        rows = list(csv.reader(io.StringIO(entries_to_csv(entries))))
        assert tuple(rows[0]) == CSV_COLUMNS
        assert len(rows) == 3
        assert rows[1][3] == "agent-1"
        assert rows[1][5] == "72"

    def test_reason_with_comma_is_quoted(self) -> None:
        entry = _entry().to_dict()
        entry["reason"] = "blocked, twice"
        rows = list(csv.reader(io.StringIO(entries_to_csv([entry]))))
        assert rows[1][6] == "blocked, twice"

    def test_empty_log(self) -> None:
        assert entries_to_csv([]).strip() == ",".join(CSV_COLUMNS)
