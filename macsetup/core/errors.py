"""
Error taxonomy — everything the provisioner raises on purpose.

Facades raise the environment errors (InstallError, ServiceError, ...).
The reconciler catches them at the per-declaration boundary and turns
them into ``failed`` outcomes.  Only ``CriticalResourceFailure`` escapes
a run, and it carries the partial report with it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from macsetup.core.models.declaration import ApplyOutcome, ResourceDeclaration
    from macsetup.core.models.report import RunReport


class MacsetupError(Exception):
    """Base class for all provisioner errors."""


class DuplicateIdError(MacsetupError, ValueError):
    """A declaration id was registered twice in the same run."""

    def __init__(self, resource_id: str):
        super().__init__(f"Declaration already registered: {resource_id}")
        self.resource_id = resource_id


class ConfigError(MacsetupError):
    """Raised when the profile is missing or invalid."""


# ── Environment failures (raised by facades) ────────────────────


class InstallError(MacsetupError):
    """A package, manager, or CLI installation failed."""


class ServiceError(MacsetupError):
    """A background service could not be started."""


class BlockWriteError(MacsetupError, OSError):
    """A text file could not be read or edited."""


class PreferenceError(MacsetupError):
    """An OS preference could not be written."""


class VcsError(MacsetupError):
    """A version-control config read/write or clone failed."""


# ── Control flow ────────────────────────────────────────────────


class PromptSkipped(MacsetupError):
    """The user declined to supply input for an optional resource."""


class CriticalResourceFailure(MacsetupError):
    """A critical declaration failed; the run stopped early.

    ``report`` is the partial run report, ending with the failed entry.
    """

    def __init__(
        self,
        declaration: ResourceDeclaration,
        outcome: ApplyOutcome,
        report: RunReport,
    ):
        super().__init__(f"Critical resource {declaration.id} failed: {outcome.message}")
        self.declaration = declaration
        self.outcome = outcome
        self.report = report
