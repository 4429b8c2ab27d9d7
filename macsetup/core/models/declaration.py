"""
Declaration, probe and outcome models — the reconciliation contract.

A ResourceDeclaration says "this should hold." A ProbeResult says what
holds right now. An ApplyOutcome says what the reconciler did about the
difference. Handlers read declarations and return probe results; the
reconciler turns those into outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ResourceKind(StrEnum):
    """Closed set of resource kinds. Each maps to exactly one handler."""

    PACKAGE_MANAGER = "package_manager"
    FORMULA = "formula"
    CASK = "cask"
    SERVICE_RUNNING = "service_running"
    FILE_BLOCK = "file_block"
    CONFIG_KEY = "config_key"
    SHELL_DEFAULT_CHANGE = "shell_default_change"
    EXTERNAL_CLI = "external_cli"
    PLATFORM = "platform"
    ROSETTA = "rosetta"
    PACKAGES_CURRENT = "packages_current"
    PACKAGES_CLEAN = "packages_clean"
    DIRECTORY = "directory"
    GIT_CLONE = "git_clone"
    INSTALLER_SCRIPT = "installer_script"
    LINE_EDIT = "line_edit"
    SSH_KEY = "ssh_key"
    EDITOR_EXTENSION = "editor_extension"


class ApplyStatus(StrEnum):
    """Per-declaration result of one reconciliation pass."""

    ALREADY_SATISFIED = "already_satisfied"
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"


# ── Desired-state payloads (one per kind family) ────────────────


class _Desired(BaseModel):
    model_config = ConfigDict(frozen=True)


class PlatformSpec(_Desired):
    system: str = "Darwin"


class RosettaSpec(_Desired):
    process: str = "oahd"


class ManagerSpec(_Desired):
    name: str = "homebrew"


class PackageSpec(_Desired):
    name: str


class ServiceSpec(_Desired):
    name: str                     # name known to the service manager
    process: str                  # process name probed for liveness
    settle_attempts: int = Field(default=5, ge=1)
    settle_delay: float = Field(default=1.0, ge=0)


class FileBlockSpec(_Desired):
    """A marker-delimited block appended to a text file."""

    path: str
    marker: str
    content: str


class ConfigKeySpec(_Desired):
    """One key in a key-value store.

    ``store`` picks the facade: ``defaults`` (OS preferences), ``git``
    (global git config, ``domain`` ignored) or ``homebrew`` (Homebrew's
    own settings). A ``prompt`` makes the value interactive: ``value``
    then only serves as the proposed default.
    """

    store: Literal["defaults", "git", "homebrew"] = "defaults"
    domain: str = ""
    key: str
    value: Any = None
    value_type: Literal["bool", "int", "float", "string"] = "string"
    prompt: str | None = None
    restart: str | None = None    # process to kill after a write (Finder, ...)


class ShellSpec(_Desired):
    shell: str = "/bin/zsh"


class ExternalCliSpec(_Desired):
    """A command that must resolve on PATH.

    ``installer="npm"`` installs ``package`` globally. ``installer="app"``
    launches ``app`` and polls for the shim it drops on PATH.
    """

    command: str
    installer: Literal["npm", "app"] = "npm"
    package: str | None = None
    app: str | None = None
    attempts: int = Field(default=15, ge=1)
    delay: float = Field(default=2.0, ge=0)


class DirectorySpec(_Desired):
    path: str
    mode: int | None = None


class GitCloneSpec(_Desired):
    repo: str
    dest: str


class InstallerScriptSpec(_Desired):
    url: str
    creates: str                  # path whose existence means "installed"
    args: tuple[str, ...] = ()


class LineEditSpec(_Desired):
    """Substitute ``pattern`` once unless ``contains`` is already in the file."""

    path: str
    contains: str
    pattern: str
    replacement: str


class SshKeySpec(_Desired):
    path: str = "~/.ssh/id_ed25519"
    key_type: str = "ed25519"
    comment_from: str | None = None   # declaration id whose value becomes the comment
    default_comment: str = "user@example.com"


class ExtensionSpec(_Desired):
    id: str


# ── Declaration ─────────────────────────────────────────────────


class ResourceDeclaration(BaseModel):
    """One unit of desired state. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: ResourceKind
    desired: Any = None
    critical: bool = False
    description: str = ""
    requires: tuple[str, ...] = ()
    retries: int = Field(default=0, ge=0)


# ── Probe ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProbeResult:
    """Observed state for one declaration.

    ``checked_at`` is excluded from equality: two probes with no apply
    between them compare equal.
    """

    present: bool
    current_value: Any = None
    proposed_value: Any = None
    detail: str = ""
    checked_at: str = field(default_factory=_now_iso, compare=False)

    @classmethod
    def found(cls, current_value: Any = None, detail: str = "") -> ProbeResult:
        return cls(present=True, current_value=current_value, detail=detail)

    @classmethod
    def missing(
        cls,
        current_value: Any = None,
        proposed_value: Any = None,
        detail: str = "",
    ) -> ProbeResult:
        return cls(
            present=False,
            current_value=current_value,
            proposed_value=proposed_value,
            detail=detail,
        )


# ── Outcome ─────────────────────────────────────────────────────


class ApplyOutcome(BaseModel):
    """Result of reconciling one declaration.

    ``value`` is the resolved value of the resource afterwards (the git
    email that was written, the shell that is now the login shell, ...).
    Later declarations read it through ``RunReport.value_of``.
    """

    status: ApplyStatus
    message: str = ""
    duration_ms: int = 0
    value: Any = None
    error: str | None = None
    finished_at: str = Field(default_factory=_now_iso)

    @property
    def ok(self) -> bool:
        """Whether the desired state holds after this pass."""
        return self.status in (ApplyStatus.ALREADY_SATISFIED, ApplyStatus.APPLIED)

    @property
    def failed(self) -> bool:
        return self.status == ApplyStatus.FAILED

    @classmethod
    def satisfied(cls, message: str = "", value: Any = None, **kwargs: Any) -> ApplyOutcome:
        return cls(status=ApplyStatus.ALREADY_SATISFIED, message=message, value=value, **kwargs)

    @classmethod
    def applied(cls, message: str = "", value: Any = None, **kwargs: Any) -> ApplyOutcome:
        return cls(status=ApplyStatus.APPLIED, message=message, value=value, **kwargs)

    @classmethod
    def failure(cls, message: str, error: str | None = None, **kwargs: Any) -> ApplyOutcome:
        return cls(status=ApplyStatus.FAILED, message=message, error=error, **kwargs)

    @classmethod
    def skip(cls, reason: str = "", **kwargs: Any) -> ApplyOutcome:
        return cls(status=ApplyStatus.SKIPPED, message=reason, **kwargs)
