"""CLI entry point for claw-trust.

Invoked as::

    claw-trust [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m claw_trust.cli.main

Commands
--------
event add        Record an event for an agent
score            Compute the trust score for an agent
preflight        Allow/review/block decision for a risky action
policy show      Show the tenant policy
policy presets   List policy presets
policy apply     Replace the tenant policy with a preset
policy set       Merge changes into the tenant policy
policy reset     Reset the tenant policy to defaults
decisions        Show the decision audit log

State (events and policies) lives in the JSON file given by ``--state-file``.
Without it every command starts from an empty in-memory state.
"""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Callable

import click
from rich.console import Console
from rich.table import Table

console = Console()

_OUTCOME_STYLES = {"allow": "green", "review": "yellow", "block": "red"}


# ------------------------------------------------------------------
# Shared options
# ------------------------------------------------------------------


def _state_options(func: Callable[..., None]) -> Callable[..., None]:
    """Add ``--state-file`` and ``--tenant`` options to a command."""
    func = click.option(
        "--tenant",
        "-t",
        default="default",
        show_default=True,
        help="Tenant (API key scope) to operate on.",
    )(func)
    func = click.option(
        "--state-file",
        type=click.Path(),
        default=None,
        help="Path to a JSON snapshot holding events and policies.",
    )(func)
    return func


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="claw-trust")
def cli() -> None:
    """Explainable trust scoring and preflight decisions for AI agents"""


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from claw_trust import __version__

    console.print(f"[bold]claw-trust[/bold] v{__version__}")


# ------------------------------------------------------------------
# event add
# ------------------------------------------------------------------


@cli.group(name="event")
def event_group() -> None:
    """Record agent events."""


@event_group.command(name="add")
@click.argument("agent_id")
@click.option(
    "--kind",
    "-k",
    type=click.Choice(["positive", "neutral", "negative"]),
    required=True,
    help="Event polarity.",
)
@click.option("--type", "event_type", required=True, help="Event type, e.g. completed_task_on_time.")
@click.option("--source", default=None, help="Origin label, e.g. stripe.")
@click.option("--source-type", default=None, help="verified_integration, self_reported, ...")
@click.option("--confidence", type=float, default=None, help="Reporter confidence (0-1).")
@click.option("--details", default=None, help="Free-text details.")
@click.option("--occurred-at", default=None, help="ISO-8601 timestamp of the event.")
@click.option("--external-id", default=None, help="Idempotency key from the upstream source.")
@_state_options
def event_add_command(
    agent_id: str,
    kind: str,
    event_type: str,
    source: str | None,
    source_type: str | None,
    confidence: float | None,
    details: str | None,
    occurred_at: str | None,
    external_id: str | None,
    state_file: str | None,
    tenant: str,
) -> None:
    """Record an event for AGENT_ID."""
    from claw_trust.ledger import DuplicateEventError, EventValidationError

    service = _load_service(state_file)
    payload = {
        "agent_id": agent_id,
        "kind": kind,
        "event_type": event_type,
        "source": source,
        "source_type": source_type,
        "confidence": confidence,
        "details": details,
        "occurred_at": occurred_at,
        "external_event_id": external_id,
    }
    try:
        recorded = service.record_event(tenant, payload)
    except (EventValidationError, DuplicateEventError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    _save_service(service, state_file)

    console.print(f"[green]Recorded[/green] {recorded.event.kind.value} event "
                  f"[bold]{recorded.event.event_type}[/bold] for {recorded.event.agent_id}")
    console.print(f"  Event ID: {recorded.event.id}")
    console.print(f"  Score:    {recorded.previous_score} -> [bold]{recorded.score.score}[/bold] "
                  f"({recorded.score.level})")


# ------------------------------------------------------------------
# score
# ------------------------------------------------------------------


@cli.command(name="score")
@click.argument("agent_id")
@click.option("--trace", is_flag=True, default=False, help="Show per-event contributions.")
@click.option("--trace-limit", type=int, default=5, show_default=True, help="Trace rows (1-20).")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print raw JSON.")
@_state_options
def score_command(
    agent_id: str,
    trace: bool,
    trace_limit: int,
    as_json: bool,
    state_file: str | None,
    tenant: str,
) -> None:
    """Compute the trust and behavior scores for AGENT_ID."""
    from claw_trust.ledger import EventValidationError

    service = _load_service(state_file)
    try:
        result = service.get_score(
            tenant, agent_id, include_trace=trace, trace_limit=trace_limit
        )
    except EventValidationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        return

    table = Table(title=f"Trust Score: {result.agent_id}", show_header=True)
    table.add_column("Measure", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Level")
    table.add_row("Trust", str(result.score), result.level)
    table.add_row("Behavior", str(result.behavior.score), result.behavior.level)
    table.add_row("Signal quality", str(result.signal_quality.score), result.signal_quality.level)
    console.print(table)

    breakdown = result.breakdown
    console.print(f"\n  {result.explanation}")
    console.print(f"  {result.behavior.explanation}")
    console.print(
        f"  30d: +{breakdown.positive_30d} / ={breakdown.neutral_30d} / -{breakdown.negative_30d}"
        f"   lifetime: {breakdown.lifetime_events}"
        f"   excluded by policy: {breakdown.policy.excluded}"
    )

    if result.trace:
        trace_table = Table(title="Top contributions", show_header=True)
        trace_table.add_column("Event type", style="cyan")
        trace_table.add_column("Status")
        trace_table.add_column("Weight", justify="right")
        trace_table.add_column("Decay", justify="right")
        trace_table.add_column("Contribution", justify="right")
        for record in result.trace:
            trace_table.add_row(
                record.event_type,
                record.excluded_reason or record.verification_status,
                f"{record.base_weight:g}",
                f"{record.decay_factor:.4f}",
                f"{record.contribution:+.4f}",
            )
        console.print(trace_table)


# ------------------------------------------------------------------
# preflight
# ------------------------------------------------------------------


@cli.command(name="preflight")
@click.argument("agent_id")
@click.option("--amount-usd", type=float, default=0.0, help="Transaction amount in USD.")
@click.option("--new-payee", is_flag=True, default=False, help="Payee has never been paid.")
@click.option("--first-time-counterparty", is_flag=True, default=False, help="First interaction.")
@click.option("--high-privilege", is_flag=True, default=False, help="Action needs elevated rights.")
@click.option("--exposes-api-keys", is_flag=True, default=False, help="Action exposes credentials.")
@click.option("--action-type", default="preflight", show_default=True, help="Audit label.")
@click.option(
    "--audit-file",
    type=click.Path(),
    default=None,
    help="Append the decision to this JSONL audit log.",
)
@_state_options
def preflight_command(
    agent_id: str,
    amount_usd: float,
    new_payee: bool,
    first_time_counterparty: bool,
    high_privilege: bool,
    exposes_api_keys: bool,
    action_type: str,
    audit_file: str | None,
    state_file: str | None,
    tenant: str,
) -> None:
    """Decide whether AGENT_ID may perform a risky action."""
    from claw_trust.ledger import EventValidationError

    service = _load_service(state_file, audit_file)
    try:
        decision = service.preflight(
            tenant,
            {
                "agent_id": agent_id,
                "action_type": action_type,
                "amount_usd": amount_usd,
                "new_payee": new_payee,
                "first_time_counterparty": first_time_counterparty,
                "high_privilege_action": high_privilege,
                "exposes_api_keys": exposes_api_keys,
            },
        )
    except EventValidationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    outcome = decision.decision.value
    style = _OUTCOME_STYLES[outcome]
    console.print(f"[{style}]{outcome.upper()}[/{style}]  {decision.reason}")
    console.print(f"  Trust score:    {decision.trust['score']} ({decision.trust['level']})")
    console.print(f"  Behavior score: {decision.trust['behavior_score']}")
    console.print(f"  Risk penalty:   {decision.policy['risk_penalty']}")
    console.print(f"  Adjusted score: [bold]{decision.adjusted_score}[/bold]")


# ------------------------------------------------------------------
# policy
# ------------------------------------------------------------------


@cli.group(name="policy")
def policy_group() -> None:
    """Inspect and change tenant scoring policy."""


@policy_group.command(name="show")
@_state_options
def policy_show_command(state_file: str | None, tenant: str) -> None:
    """Show the current policy for the tenant."""
    service = _load_service(state_file)
    click.echo(json.dumps(service.get_policy(tenant).to_dict(), indent=2))


@policy_group.command(name="presets")
def policy_presets_command() -> None:
    """List available policy presets."""
    from claw_trust.policy import PolicyStore

    listing = PolicyStore.list_presets()
    presets: dict[str, dict[str, object]] = listing["presets"]  # type: ignore[assignment]

    table = Table(title="Policy presets", show_header=True)
    table.add_column("Preset", style="cyan")
    table.add_column("Min confidence", justify="right")
    table.add_column("Verified sensitive", justify="center")
    table.add_column("Min signal quality", justify="right")
    table.add_column("Description")
    for name, policy in presets.items():
        label = f"{name} (recommended)" if name == listing["recommended"] else name
        table.add_row(
            label,
            f"{policy['min_confidence']:g}",
            "Yes" if policy["require_verified_sensitive"] else "No",
            f"{policy['min_signal_quality']:g}",
            str(policy.get("preset_description") or ""),
        )
    console.print(table)


@policy_group.command(name="apply")
@click.argument("preset")
@_state_options
def policy_apply_command(preset: str, state_file: str | None, tenant: str) -> None:
    """Replace the tenant policy with PRESET."""
    from claw_trust.policy import PolicyValidationError

    service = _load_service(state_file)
    try:
        policy = service.apply_policy_preset(tenant, preset)
    except PolicyValidationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
    _save_service(service, state_file)
    console.print(f"[green]Applied[/green] preset [bold]{policy.preset}[/bold] to {tenant}")


@policy_group.command(name="set")
@click.option("--min-confidence", type=float, default=None, help="Minimum confidence (0-1).")
@click.option("--min-signal-quality", type=float, default=None, help="Preflight gate (0-100).")
@click.option("--allowed-source", multiple=True, help="Allowed source (repeatable).")
@click.option(
    "--require-verified-sensitive/--no-require-verified-sensitive",
    default=None,
    help="Only count sensitive event types from verified integrations.",
)
@click.option(
    "--source-type-multiplier",
    multiple=True,
    help="SOURCE_TYPE=VALUE (repeatable), e.g. self_reported=0.5.",
)
@click.option("--disable-event", multiple=True, help="Event type to exclude (repeatable).")
@click.option(
    "--event-multiplier",
    multiple=True,
    help="EVENT_TYPE=VALUE (repeatable), e.g. spam_report=2.",
)
@_state_options
def policy_set_command(
    min_confidence: float | None,
    min_signal_quality: float | None,
    allowed_source: tuple[str, ...],
    require_verified_sensitive: bool | None,
    source_type_multiplier: tuple[str, ...],
    disable_event: tuple[str, ...],
    event_multiplier: tuple[str, ...],
    state_file: str | None,
    tenant: str,
) -> None:
    """Merge changes into the tenant policy."""
    from claw_trust.policy import PolicyValidationError

    patch: dict[str, object] = {}
    if min_confidence is not None:
        patch["min_confidence"] = min_confidence
    if min_signal_quality is not None:
        patch["min_signal_quality"] = min_signal_quality
    if allowed_source:
        patch["allowed_sources"] = list(allowed_source)
    if require_verified_sensitive is not None:
        patch["require_verified_sensitive"] = require_verified_sensitive

    service = _load_service(state_file)
    try:
        if source_type_multiplier:
            patch["source_type_multipliers"] = _parse_pairs(source_type_multiplier)
        overrides: dict[str, dict[str, object]] = {}
        for event_type in disable_event:
            overrides.setdefault(event_type, {})["enabled"] = False
        for event_type, value in _parse_pairs(event_multiplier).items():
            overrides.setdefault(event_type, {})["multiplier"] = value
        if overrides:
            patch["event_overrides"] = overrides
        policy = service.set_policy(tenant, patch)
    except PolicyValidationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    _save_service(service, state_file)
    click.echo(json.dumps(policy.to_dict(), indent=2))


@policy_group.command(name="reset")
@_state_options
def policy_reset_command(state_file: str | None, tenant: str) -> None:
    """Reset the tenant policy to defaults."""
    service = _load_service(state_file)
    service.reset_policy(tenant)
    _save_service(service, state_file)
    console.print(f"[green]Policy reset[/green] for {tenant}")


# ------------------------------------------------------------------
# decisions
# ------------------------------------------------------------------


@cli.command(name="decisions")
@click.option(
    "--audit-file",
    type=click.Path(exists=True),
    required=True,
    help="JSONL decision audit log.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "csv"]),
    default="table",
    show_default=True,
)
@click.option("--limit", type=int, default=200, show_default=True, help="Maximum rows.")
@click.option("--tenant", "-t", default=None, help="Only show this tenant's decisions.")
def decisions_command(
    audit_file: str,
    output_format: str,
    limit: int,
    tenant: str | None,
) -> None:
    """Show audited preflight decisions, newest first."""
    from claw_trust.audit import DecisionAuditLogger, entries_to_csv

    entries = DecisionAuditLogger(log_path=Path(audit_file)).read_log(
        limit=max(1, limit), tenant=tenant
    )

    if output_format == "json":
        click.echo(json.dumps({"count": len(entries), "logs": entries}, indent=2))
        return
    if output_format == "csv":
        click.echo(entries_to_csv(entries), nl=False)
        return

    if not entries:
        console.print("[yellow]No decisions recorded.[/yellow]")
        return

    table = Table(title="Preflight decisions", show_header=True)
    table.add_column("Timestamp")
    table.add_column("Agent ID", style="cyan")
    table.add_column("Action")
    table.add_column("Outcome", justify="center")
    table.add_column("Score", justify="right")
    table.add_column("Reason")
    for entry in entries:
        outcome = str(entry.get("outcome", ""))
        style = _OUTCOME_STYLES.get(outcome, "white")
        table.add_row(
            str(entry.get("timestamp", "")),
            str(entry.get("agent_id", "")),
            str(entry.get("action", "")),
            f"[{style}]{outcome}[/{style}]",
            str(entry.get("score", "")),
            str(entry.get("reason", "")),
        )
    console.print(table)
    console.print(f"\nTotal: {len(entries)} decision(s)")


# ------------------------------------------------------------------
# Helpers: file-backed state for CLI use
# ------------------------------------------------------------------


def _parse_pairs(values: tuple[str, ...]) -> dict[str, object]:
    """Parse ``KEY=VALUE`` strings; values are passed on for validation."""
    from claw_trust.policy import PolicyValidationError

    pairs: dict[str, object] = {}
    for item in values:
        key, sep, raw = item.partition("=")
        if not sep or not key.strip():
            raise PolicyValidationError(f"Expected KEY=VALUE, got {item!r}.")
        try:
            pairs[key.strip()] = float(raw)
        except ValueError:
            pairs[key.strip()] = raw
    return pairs


def _load_service(state_file: str | None, audit_file: str | None = None):  # type: ignore[no-untyped-def]
    """Return a TrustService, optionally pre-populated from a snapshot file."""
    from claw_trust.audit import DecisionAuditLogger
    from claw_trust.service import TrustService

    service = TrustService(
        audit_logger=DecisionAuditLogger(log_path=Path(audit_file) if audit_file else None)
    )
    if state_file:
        try:
            service.load_snapshot(Path(state_file))
        except (OSError, ValueError) as exc:
            console.print(f"[yellow]Warning:[/yellow] Could not load state file: {exc}")
    return service


def _save_service(service, state_file: str | None) -> None:  # type: ignore[no-untyped-def]
    """Persist service state to the snapshot file."""
    if not state_file:
        return
    service.save_snapshot(Path(state_file))


if __name__ == "__main__":
    cli()
