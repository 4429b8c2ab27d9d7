"""
Reconciler — the probe → apply → verify loop.

Walks the registry in order. For every declaration:

    gate on requires → probe → (present? done) → apply → re-probe → outcome

Everything a handler raises is caught here and becomes a ``failed``
outcome. The one exception that leaves ``run()`` is
``CriticalResourceFailure``, raised after a critical declaration fails;
it carries the partial report.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from macsetup.adapters.registry import Toolbox
from macsetup.core.engine.handlers import HANDLERS, ReconcileContext, ResourceHandler
from macsetup.core.engine.registry import ResourceRegistry
from macsetup.core.errors import CriticalResourceFailure, PromptSkipped
from macsetup.core.models.declaration import (
    ApplyOutcome,
    ApplyStatus,
    ProbeResult,
    ResourceDeclaration,
    ResourceKind,
)
from macsetup.core.models.report import RunReport
from macsetup.core.reliability.backoff import Backoff

logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[ResourceDeclaration, ApplyOutcome], None]

_MARKERS = {
    ApplyStatus.ALREADY_SATISFIED: "=",
    ApplyStatus.APPLIED: "✓",
    ApplyStatus.FAILED: "✗",
    ApplyStatus.SKIPPED: "⊘",
}


def _describe(exc: BaseException) -> str:
    return f"{type(exc).__name__}: {exc}"


class Reconciler:
    """Drives a declaration sequence to its desired state.

    Args:
        toolbox: Facades handlers talk to.
        handlers: Kind → handler table. Defaults to ``HANDLERS``.
        dry_run: Probe only; declarations that would change are skipped,
            check-only kinds that do not hold fail.
        on_outcome: Called with each (declaration, outcome) as it completes.
        backoff: Delay schedule for declarations with ``retries``.
    """

    def __init__(
        self,
        toolbox: Toolbox,
        handlers: dict[ResourceKind, ResourceHandler] | None = None,
        dry_run: bool = False,
        on_outcome: OutcomeCallback | None = None,
        backoff: Backoff | None = None,
    ):
        self.toolbox = toolbox
        self.handlers = handlers if handlers is not None else HANDLERS
        self.dry_run = dry_run
        self.on_outcome = on_outcome
        self.backoff = backoff or Backoff()

    def run(self, registry: ResourceRegistry, report: RunReport | None = None) -> RunReport:
        """Reconcile every declaration in registration order.

        Returns:
            The finished RunReport.

        Raises:
            CriticalResourceFailure: A critical declaration failed. The
                run stops there; ``exc.report`` holds what was recorded.
        """
        report = report or RunReport(dry_run=self.dry_run)
        ctx = ReconcileContext(toolbox=self.toolbox, report=report)
        logger.info("Reconciling %d declarations (run %s)", len(registry), report.run_id)

        for decl in registry.declarations():
            outcome = self.reconcile_one(decl, ctx)
            report.record(decl, outcome)

            logger.info("%s %s → %s", _MARKERS[outcome.status], decl.id, outcome.status.value)
            if self.on_outcome is not None:
                self.on_outcome(decl, outcome)

            if outcome.failed and decl.critical:
                report.finish(aborted=True)
                logger.error("Critical resource %s failed, aborting run", decl.id)
                raise CriticalResourceFailure(decl, outcome, report)

        report.finish()
        logger.info(report.summary_line())
        return report

    def reconcile_one(self, decl: ResourceDeclaration, ctx: ReconcileContext) -> ApplyOutcome:
        """Reconcile a single declaration. Never raises."""
        start = time.monotonic()
        outcome = self._reconcile(decl, ctx)
        return outcome.model_copy(
            update={"duration_ms": int((time.monotonic() - start) * 1000)}
        )

    # ── Steps ────────────────────────────────────────────────────

    def _reconcile(self, decl: ResourceDeclaration, ctx: ReconcileContext) -> ApplyOutcome:
        blocker = self._blocking_dependency(decl, ctx.report)
        if blocker is not None:
            return ApplyOutcome.skip(f"requires {blocker}")

        handler = self.handlers.get(decl.kind)
        if handler is None:
            return ApplyOutcome.failure(f"No handler for kind '{decl.kind.value}'")

        try:
            probe = handler.probe(decl, ctx)
        except Exception as e:
            logger.debug("Probe of %s raised", decl.id, exc_info=True)
            return ApplyOutcome.failure(f"probe failed: {e}", error=_describe(e))

        if probe.present:
            return ApplyOutcome.satisfied(probe.detail, value=probe.current_value)

        if self.dry_run:
            if not handler.can_apply:
                return ApplyOutcome.failure(f"cannot apply: {probe.detail or 'not present'}")
            return ApplyOutcome.skip("would apply", value=probe.proposed_value)

        try:
            value = self._apply_with_retries(handler, decl, probe, ctx)
        except PromptSkipped as e:
            return ApplyOutcome.skip(str(e) or "no input given")
        except Exception as e:
            logger.debug("Apply of %s raised", decl.id, exc_info=True)
            return ApplyOutcome.failure(f"apply failed: {e}", error=_describe(e))

        return self._verify(handler, decl, value, ctx)

    def _blocking_dependency(self, decl: ResourceDeclaration, report: RunReport) -> str | None:
        """First required id that has not reached a satisfied state."""
        for required in decl.requires:
            outcome = report.outcome_for(required)
            if outcome is None or not outcome.ok:
                return required
        return None

    def _apply_with_retries(
        self,
        handler: ResourceHandler,
        decl: ResourceDeclaration,
        probe: ProbeResult,
        ctx: ReconcileContext,
    ):
        attempt = 0
        while True:
            try:
                return handler.apply(decl, probe, ctx)
            except PromptSkipped:
                raise
            except Exception as e:
                if attempt >= decl.retries:
                    raise
                attempt += 1
                delay = self.backoff.delay(attempt)
                logger.warning(
                    "%s apply failed (%s), retry %d/%d in %.1fs",
                    decl.id,
                    e,
                    attempt,
                    decl.retries,
                    delay,
                )
                self.toolbox.sleep(delay)

    def _verify(
        self,
        handler: ResourceHandler,
        decl: ResourceDeclaration,
        value,
        ctx: ReconcileContext,
    ) -> ApplyOutcome:
        try:
            after = handler.probe(decl, ctx)
        except Exception as e:
            return ApplyOutcome.failure(f"verify failed: {e}", error=_describe(e))

        if not after.present:
            detail = f" ({after.detail})" if after.detail else ""
            return ApplyOutcome.failure(f"still missing after apply{detail}")

        resolved = value if value is not None else after.current_value
        return ApplyOutcome.applied(after.detail or "applied", value=resolved)
