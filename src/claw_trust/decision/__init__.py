"""Preflight allow/review/block decisions for risky agent actions."""
from __future__ import annotations

from claw_trust.decision.preflight import ActionContext, Decision, DecisionEngine, DecisionOutcome

__all__ = ["ActionContext", "Decision", "DecisionEngine", "DecisionOutcome"]
