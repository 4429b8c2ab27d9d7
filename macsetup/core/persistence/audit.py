"""
Run ledger — append-only history of provisioning runs.

Each run appends one JSON line to ``audit.ndjson`` under the state
directory (``$MACSETUP_STATE_DIR``, default ``~/.local/state/macsetup``).
The reconciler never reads it back; it exists for ``macsetup history``
and for debugging a machine after the fact.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from macsetup.core.models.report import RunReport

logger = logging.getLogger(__name__)

STATE_DIR_ENV_VAR = "MACSETUP_STATE_DIR"
DEFAULT_STATE_DIR = Path("~/.local/state/macsetup")
DEFAULT_AUDIT_FILE = "audit.ndjson"


def default_audit_path() -> Path:
    state_dir = os.environ.get(STATE_DIR_ENV_VAR)
    base = Path(state_dir) if state_dir else DEFAULT_STATE_DIR
    return base.expanduser() / DEFAULT_AUDIT_FILE


class AuditEntry(BaseModel):
    """One provisioning run, summarized."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    run_id: str = ""
    profile: str = ""
    status: str = ""               # success, partial_success, aborted
    dry_run: bool = False
    mock: bool = False

    total: int = 0
    counts: dict[str, int] = Field(default_factory=dict)
    failed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    aborted_on: str | None = None
    duration_ms: int = 0

    context: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_report(
        cls,
        report: RunReport,
        profile: str = "",
        duration_ms: int = 0,
        mock: bool = False,
        aborted_on: str | None = None,
    ) -> AuditEntry:
        return cls(
            run_id=report.run_id,
            profile=profile,
            status=report.status.value,
            dry_run=report.dry_run,
            mock=mock,
            total=report.total,
            counts=report.counts,
            failed=report.failed_ids,
            skipped=report.skipped_ids,
            aborted_on=aborted_on,
            duration_ms=duration_ms,
        )


class AuditWriter:
    """Append-only ledger writer.

    Each call to write() appends a single JSON line. The file and its
    parent directory are created on first write.
    """

    def __init__(self, path: Path | None = None):
        self._path = path if path is not None else default_audit_path()

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> bool:
        """Append an entry. A write failure is logged, not raised.

        Returns:
            True if the line was written.
        """
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error("Failed to write run ledger entry: %s", e)
            return False
        logger.debug("Ledger entry written: %s (%s)", entry.run_id, entry.status)
        return True

    def read_all(self) -> list[AuditEntry]:
        """All entries, oldest first. Corrupt lines are skipped."""
        if not self._path.is_file():
            return []

        entries = []
        try:
            with self._path.open("r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except (json.JSONDecodeError, ValidationError) as e:
                        logger.warning("Skipping corrupt ledger entry at line %d: %s", line_num, e)
        except OSError as e:
            logger.error("Failed to read run ledger: %s", e)

        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        return self.read_all()[-n:] if n > 0 else []
