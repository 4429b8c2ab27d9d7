"""
Provision use case — load profile, build declarations, reconcile, audit.

The full vertical slice from ``macsetup apply`` to a ledger entry. The
CLI only formats what comes back; everything else happens here.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from macsetup.adapters.registry import Toolbox, build_mock_toolbox, build_toolbox
from macsetup.core.config.loader import ConfigError, load_profile
from macsetup.core.engine.reconciler import OutcomeCallback, Reconciler
from macsetup.core.engine.registry import ResourceRegistry
from macsetup.core.errors import CriticalResourceFailure, DuplicateIdError
from macsetup.core.models.profile import Profile
from macsetup.core.models.report import RunReport, RunStatus
from macsetup.core.persistence.audit import AuditEntry, AuditWriter
from macsetup.core.services.workstation import build_declarations

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    """Result of one provisioning run."""

    report: RunReport | None = None
    profile: Profile | None = None
    registry: ResourceRegistry | None = None
    aborted_on: str | None = None
    error: str | None = None

    @property
    def status(self) -> RunStatus:
        if self.report is None:
            return RunStatus.ABORTED
        return self.report.status

    @property
    def exit_code(self) -> int:
        """0 for success and partial success, 1 otherwise."""
        return 1 if self.status == RunStatus.ABORTED else 0

    def to_dict(self) -> dict:
        result: dict = {"status": self.status.value}
        if self.error:
            result["error"] = self.error
        if self.aborted_on:
            result["aborted_on"] = self.aborted_on
        if self.profile is not None:
            result["profile"] = self.profile.name
        if self.report is not None:
            result["report"] = self.report.to_dict()
        return result


def make_toolbox(profile: Profile, mock: bool = False, interactive: bool = True) -> Toolbox:
    """Real or in-memory facades for ``profile``."""
    if mock:
        from macsetup.adapters.prompt import ClickPrompt, NonInteractivePrompt

        prompt = ClickPrompt() if interactive else NonInteractivePrompt()
        return build_mock_toolbox(profile, prompt=prompt)
    return build_toolbox(interactive=interactive, editor_command=profile.editor.command)


def _declarations(profile: Profile, toolbox: Toolbox) -> ResourceRegistry:
    """Build the registry; a profile that repeats a resource is invalid."""
    try:
        return build_declarations(profile, toolbox)
    except DuplicateIdError as e:
        raise ConfigError(f"Invalid profile: {e}") from e


def plan_provision(
    config_path: Path | None = None,
    mock: bool = False,
    toolbox: Toolbox | None = None,
) -> ProvisionResult:
    """Build the declaration sequence without probing anything."""
    result = ProvisionResult()
    try:
        result.profile = load_profile(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    toolbox = toolbox or make_toolbox(result.profile, mock=mock, interactive=False)
    try:
        result.registry = _declarations(result.profile, toolbox)
    except ConfigError as e:
        result.error = str(e)
    return result


def run_provision(
    config_path: Path | None = None,
    dry_run: bool = False,
    mock: bool = False,
    interactive: bool = True,
    toolbox: Toolbox | None = None,
    on_outcome: OutcomeCallback | None = None,
    audit_writer: AuditWriter | None = None,
) -> ProvisionResult:
    """Provision the workstation described by the profile.

    Args:
        config_path: Explicit profile path; None uses discovery.
        dry_run: Probe only, apply nothing.
        mock: Run against the in-memory machine.
        interactive: Whether prompts may ask the user.
        toolbox: Pre-built facades (tests). Overrides ``mock``.
        on_outcome: Called as each declaration completes.
        audit_writer: Ledger to append to. Defaults to the state dir.

    Returns:
        ProvisionResult. A critical failure is reported through
        ``aborted_on`` and the partial report, not raised.
    """
    result = ProvisionResult()
    start = time.monotonic()

    # ── Load profile ─────────────────────────────────────────────
    try:
        profile = load_profile(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result
    result.profile = profile

    # ── Build declarations ───────────────────────────────────────
    toolbox = toolbox or make_toolbox(profile, mock=mock, interactive=interactive)
    try:
        registry = _declarations(profile, toolbox)
    except ConfigError as e:
        result.error = str(e)
        return result
    result.registry = registry

    # ── Reconcile ────────────────────────────────────────────────
    reconciler = Reconciler(toolbox, dry_run=dry_run, on_outcome=on_outcome)
    try:
        result.report = reconciler.run(registry)
    except CriticalResourceFailure as e:
        result.report = e.report
        result.aborted_on = e.declaration.id
        result.error = str(e)

    # ── Write ledger ─────────────────────────────────────────────
    duration_ms = int((time.monotonic() - start) * 1000)
    writer = audit_writer or AuditWriter()
    writer.write(AuditEntry.from_report(
        result.report,
        profile=profile.name,
        duration_ms=duration_ms,
        mock=mock,
        aborted_on=result.aborted_on,
    ))

    return result
