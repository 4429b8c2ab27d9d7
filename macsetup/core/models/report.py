"""
RunReport — ordered record of one provisioning run.

Built incrementally by the reconciler, one entry per declaration, in
registration order. Besides aggregate counts it exposes the explicit
accessors later declarations use to read earlier results
(``outcome_for`` / ``value_of``).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from macsetup.core.models.declaration import ApplyOutcome, ApplyStatus, ResourceDeclaration


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def generate_run_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"


class RunStatus(StrEnum):
    """Machine-checkable final status of a run."""

    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    ABORTED = "aborted"


@dataclass(frozen=True)
class ReportEntry:
    declaration: ResourceDeclaration
    outcome: ApplyOutcome

    def to_dict(self) -> dict:
        return {
            "id": self.declaration.id,
            "kind": self.declaration.kind.value,
            "critical": self.declaration.critical,
            "description": self.declaration.description,
            **self.outcome.model_dump(mode="json"),
        }


@dataclass
class RunReport:
    """Result of reconciling a declaration sequence."""

    run_id: str = field(default_factory=generate_run_id)
    entries: list[ReportEntry] = field(default_factory=list)
    aborted: bool = False
    dry_run: bool = False
    started_at: str = field(default_factory=_now_iso)
    ended_at: str = ""

    def record(self, declaration: ResourceDeclaration, outcome: ApplyOutcome) -> None:
        """Append one entry. Only the reconciler calls this."""
        self.entries.append(ReportEntry(declaration, outcome))

    def finish(self, aborted: bool = False) -> None:
        self.aborted = aborted
        self.ended_at = _now_iso()

    # ── Accessors for state threading ────────────────────────────

    def outcome_for(self, resource_id: str) -> ApplyOutcome | None:
        """Outcome of an earlier declaration, or None if not yet reconciled."""
        for entry in self.entries:
            if entry.declaration.id == resource_id:
                return entry.outcome
        return None

    def value_of(self, resource_id: str) -> Any:
        """Resolved value of an earlier declaration, when it holds."""
        outcome = self.outcome_for(resource_id)
        if outcome is None or not outcome.ok:
            return None
        return outcome.value

    # ── Aggregates ───────────────────────────────────────────────

    @property
    def total(self) -> int:
        return len(self.entries)

    def count(self, status: ApplyStatus) -> int:
        return sum(1 for e in self.entries if e.outcome.status == status)

    @property
    def counts(self) -> dict[str, int]:
        return {status.value: self.count(status) for status in ApplyStatus}

    @property
    def statuses(self) -> list[ApplyStatus]:
        return [e.outcome.status for e in self.entries]

    @property
    def failed_ids(self) -> list[str]:
        """Ids of failed non-critical declarations."""
        return [
            e.declaration.id
            for e in self.entries
            if e.outcome.failed and not e.declaration.critical
        ]

    @property
    def skipped_ids(self) -> list[str]:
        return [e.declaration.id for e in self.entries if e.outcome.status == ApplyStatus.SKIPPED]

    @property
    def status(self) -> RunStatus:
        if self.aborted:
            return RunStatus.ABORTED
        if self.count(ApplyStatus.FAILED) or self.count(ApplyStatus.SKIPPED):
            return RunStatus.PARTIAL_SUCCESS
        return RunStatus.SUCCESS

    def summary(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "total": self.total,
            "counts": self.counts,
            "failed": self.failed_ids,
            "skipped": self.skipped_ids,
        }

    def summary_line(self) -> str:
        c = self.counts
        return (
            f"{self.status.value}: {self.total} resources, "
            f"{c['applied']} applied, {c['already_satisfied']} already satisfied, "
            f"{c['skipped']} skipped, {c['failed']} failed"
        )

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "dry_run": self.dry_run,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            **self.summary(),
            "entries": [e.to_dict() for e in self.entries],
        }
