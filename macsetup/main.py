"""
macsetup — CLI entrypoint.

Usage:
    macsetup                      # same as ``macsetup apply``
    macsetup apply --dry-run
    macsetup apply --mock --non-interactive
    macsetup plan
    macsetup history
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click

from macsetup import __version__
from macsetup.core.models.declaration import ApplyOutcome, ApplyStatus, ResourceDeclaration
from macsetup.core.models.report import RunStatus
from macsetup.core.observability.logging_config import resolve_level, setup_logging

_STYLES = {
    ApplyStatus.APPLIED: ("✓", {"fg": "green"}),
    ApplyStatus.ALREADY_SATISFIED: ("=", {"dim": True}),
    ApplyStatus.SKIPPED: ("⊘", {"fg": "yellow"}),
    ApplyStatus.FAILED: ("✗", {"fg": "red"}),
}

_RUN_COLORS = {
    RunStatus.SUCCESS: "green",
    RunStatus.PARTIAL_SUCCESS: "yellow",
    RunStatus.ABORTED: "red",
}


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="macsetup")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to profile.yml (default: MACSETUP_CONFIG, then ~/.config/macsetup/profile.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """macsetup — provision a macOS workstation, idempotently."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path).expanduser() if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = None
    setup_logging(level=resolve_level(level))

    if ctx.invoked_subcommand is None:
        ctx.invoke(apply)


def _echo_outcome(decl: ResourceDeclaration, outcome: ApplyOutcome, verbose: bool) -> None:
    marker, style = _STYLES[outcome.status]
    click.secho(f"   {marker} {decl.id}", nl=False, **style)
    message = f"  {outcome.message}" if outcome.message else ""
    timing = f" ({outcome.duration_ms}ms)" if verbose and outcome.duration_ms else ""
    click.secho(f"{message}{timing}", dim=True)
    if outcome.failed and outcome.error and verbose:
        for line in outcome.error.split("\n")[:5]:
            click.echo(f"     │ {line}")


@cli.command()
@click.option("--dry-run", is_flag=True, help="Probe only; report what would change.")
@click.option("--mock", is_flag=True, help="Run against an in-memory machine.")
@click.option("--non-interactive", is_flag=True, help="Never prompt; use profile defaults.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def apply(
    ctx: click.Context,
    dry_run: bool = False,
    mock: bool = False,
    non_interactive: bool = False,
    as_json: bool = False,
) -> None:
    """Reconcile the workstation with the profile.

    Each resource is probed first and only changed when it is missing.
    Exits 0 on success or partial success, 1 when a critical resource
    failed.

    Examples:

        macsetup apply

        macsetup apply --dry-run

        macsetup apply --mock --non-interactive
    """
    from macsetup.core.use_cases.provision import run_provision

    quiet = ctx.obj.get("quiet", False)
    verbose = ctx.obj.get("verbose", False)

    if not as_json and not quiet:
        mode_label = "[dry-run] " if dry_run else ""
        mode_label += "[mock] " if mock else ""
        click.secho(f"\n🍎 {mode_label}Provisioning workstation", fg="cyan", bold=True)
        click.echo()

    def on_outcome(decl: ResourceDeclaration, outcome: ApplyOutcome) -> None:
        if as_json:
            return
        if quiet and outcome.status == ApplyStatus.ALREADY_SATISFIED:
            return
        _echo_outcome(decl, outcome, verbose)

    result = run_provision(
        config_path=ctx.obj.get("config_path"),
        dry_run=dry_run,
        mock=mock,
        interactive=not (non_interactive or as_json),
        on_outcome=on_outcome,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.report is None:
        click.secho(f"❌ {result.error}", fg="red")
        sys.exit(result.exit_code)

    report = result.report
    click.echo()
    if result.aborted_on:
        click.secho(f"   ❌ {result.error}", fg="red")
    click.secho(f"   {report.summary_line()}", fg=_RUN_COLORS[report.status], bold=True)

    if report.failed_ids:
        click.secho(f"   Failed: {', '.join(report.failed_ids)}", fg="red")
    if report.skipped_ids and verbose:
        click.secho(f"   Skipped: {', '.join(report.skipped_ids)}", fg="yellow")

    if result.profile and result.profile.notes and not quiet and not result.aborted_on:
        click.echo()
        for note in result.profile.notes:
            click.echo(f"   • {note}")

    click.echo()
    sys.exit(result.exit_code)


@cli.command()
@click.option("--mock", is_flag=True, help="Plan for the in-memory machine.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def plan(ctx: click.Context, mock: bool, as_json: bool) -> None:
    """List declarations in execution order without probing them."""
    from macsetup.core.use_cases.provision import plan_provision

    result = plan_provision(config_path=ctx.obj.get("config_path"), mock=mock)

    if result.registry is None:
        if as_json:
            click.echo(json.dumps({"error": result.error}, indent=2))
        else:
            click.secho(f"❌ {result.error}", fg="red")
        sys.exit(1)

    declarations = result.registry.declarations()

    if as_json:
        click.echo(json.dumps(
            [
                {
                    "id": d.id,
                    "kind": d.kind.value,
                    "critical": d.critical,
                    "requires": list(d.requires),
                    "description": d.description,
                }
                for d in declarations
            ],
            indent=2,
        ))
        return

    assert result.profile is not None
    click.secho(f"\n📋 {result.profile.name} — {len(declarations)} resources", fg="cyan", bold=True)
    click.echo()
    width = len(str(len(declarations)))
    for index, decl in enumerate(declarations, start=1):
        critical = click.style(" [critical]", fg="red") if decl.critical else ""
        requires = f"  ← {', '.join(decl.requires)}" if decl.requires else ""
        click.echo(f"   {index:>{width}}. {decl.id} ({decl.kind.value}){critical}", nl=False)
        click.secho(requires, dim=True)
    click.echo()


@cli.command()
@click.option("--limit", "-n", default=10, show_default=True, help="Number of runs to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def history(limit: int, as_json: bool) -> None:
    """Show recent provisioning runs."""
    from macsetup.core.persistence.audit import AuditWriter

    writer = AuditWriter()
    entries = writer.read_recent(limit)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.echo(f"No runs recorded in {writer.path}")
        return

    click.secho(f"\n📜 Last {len(entries)} run(s)", fg="cyan", bold=True)
    click.echo()
    for entry in reversed(entries):
        color = _RUN_COLORS.get(entry.status, "white")
        flags = "".join(f" [{f}]" for f, on in (("dry-run", entry.dry_run), ("mock", entry.mock)) if on)
        click.echo(f"   {entry.timestamp[:19]}  ", nl=False)
        click.secho(f"{entry.status:<16}", fg=color, nl=False)
        click.echo(f"{entry.total:>3} resources  {entry.run_id}{flags}")
        if entry.aborted_on:
            click.secho(f"     aborted on {entry.aborted_on}", fg="red")
        if entry.failed:
            click.secho(f"     failed: {', '.join(entry.failed)}", fg="red")
    click.echo()


if __name__ == "__main__":
    cli()
