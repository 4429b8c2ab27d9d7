"""
Kind handlers — one probe/apply strategy per ResourceKind.

A handler knows how to observe one kind of resource and how to move it
toward its desired state. It never decides *whether* to apply; that is
the reconciler's job. Handlers talk to the machine only through the
facades in the ``Toolbox``.

Contract:
    probe(decl, ctx)          → ProbeResult   (pure read, may raise)
    apply(decl, probe, ctx)   → Any           (resolved value, may raise)

The dispatch table ``HANDLERS`` is closed over ``ResourceKind``: adding
a kind means adding exactly one handler here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from macsetup.adapters.base import PreferenceStore
from macsetup.adapters.registry import Toolbox
from macsetup.core.errors import InstallError, MacsetupError, PromptSkipped
from macsetup.core.models.declaration import (
    ConfigKeySpec,
    ProbeResult,
    ResourceDeclaration,
    ResourceKind,
)
from macsetup.core.models.report import RunReport

logger = logging.getLogger(__name__)


@dataclass
class ReconcileContext:
    """What a handler sees: the facades and the run so far."""

    toolbox: Toolbox
    report: RunReport

    def wait_for(self, check, attempts: int, delay: float) -> bool:
        """Poll ``check()`` up to ``attempts`` times, sleeping ``delay`` between tries."""
        for attempt in range(1, attempts + 1):
            if check():
                return True
            if attempt < attempts:
                self.toolbox.sleep(delay)
        return False


class ResourceHandler(ABC):
    """Probe/apply strategy for one resource kind.

    ``can_apply`` is False for kinds that can only be checked. A dry run
    reports those as failed rather than "would apply".
    """

    kind: ResourceKind
    can_apply: bool = True

    @abstractmethod
    def probe(self, decl: ResourceDeclaration, ctx: ReconcileContext) -> ProbeResult:
        """Observe current state. Must not change anything."""

    @abstractmethod
    def apply(self, decl: ResourceDeclaration, probe: ProbeResult, ctx: ReconcileContext) -> Any:
        """Move toward the desired state.

        Must be safe on partial state. Returns the resolved value of the
        resource (recorded on the outcome), or None.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self.kind.value!r}>"


# ── System ──────────────────────────────────────────────────────


class PlatformHandler(ResourceHandler):
    """The host must run the expected OS. Nothing can be applied."""

    kind = ResourceKind.PLATFORM
    can_apply = False

    def probe(self, decl, ctx):
        system = ctx.toolbox.system.platform()
        if system == decl.desired.system:
            return ProbeResult.found(system, detail=f"{system} {ctx.toolbox.system.machine()}")
        return ProbeResult.missing(system, detail=f"running on {system}")

    def apply(self, decl, probe, ctx):
        raise MacsetupError(
            f"Unsupported platform {probe.current_value!r}; this profile targets {decl.desired.system}"
        )


class RosettaHandler(ResourceHandler):
    kind = ResourceKind.ROSETTA

    def probe(self, decl, ctx):
        if ctx.toolbox.services.is_running(decl.desired.process):
            return ProbeResult.found(detail="translation daemon running")
        return ProbeResult.missing()

    def apply(self, decl, probe, ctx):
        ctx.toolbox.system.install_rosetta()


class ShellHandler(ResourceHandler):
    kind = ResourceKind.SHELL_DEFAULT_CHANGE

    def probe(self, decl, ctx):
        current = ctx.toolbox.system.login_shell()
        if current == decl.desired.shell:
            return ProbeResult.found(current)
        return ProbeResult.missing(current, detail=f"login shell is {current}")

    def apply(self, decl, probe, ctx):
        ctx.toolbox.system.change_login_shell(decl.desired.shell)
        return decl.desired.shell


class DirectoryHandler(ResourceHandler):
    kind = ResourceKind.DIRECTORY

    def probe(self, decl, ctx):
        spec = decl.desired
        if ctx.toolbox.system.is_directory(spec.path, spec.mode):
            return ProbeResult.found(spec.path)
        return ProbeResult.missing()

    def apply(self, decl, probe, ctx):
        spec = decl.desired
        ctx.toolbox.system.ensure_directory(spec.path, spec.mode)
        return spec.path


class InstallerScriptHandler(ResourceHandler):
    """A remote installer, considered done once the path it creates exists."""

    kind = ResourceKind.INSTALLER_SCRIPT

    def probe(self, decl, ctx):
        if ctx.toolbox.system.path_exists(decl.desired.creates):
            return ProbeResult.found(decl.desired.creates)
        return ProbeResult.missing()

    def apply(self, decl, probe, ctx):
        spec = decl.desired
        ctx.toolbox.system.run_installer(spec.url, tuple(spec.args))
        return spec.creates


# ── Packages ────────────────────────────────────────────────────


class PackageManagerHandler(ResourceHandler):
    kind = ResourceKind.PACKAGE_MANAGER

    def probe(self, decl, ctx):
        if ctx.toolbox.packages.is_manager_present():
            return ProbeResult.found(decl.desired.name)
        return ProbeResult.missing()

    def apply(self, decl, probe, ctx):
        ctx.toolbox.packages.install_manager()
        return decl.desired.name


class PackageHandler(ResourceHandler):
    """Formula or cask, depending on the kind it is registered for."""

    def __init__(self, kind: ResourceKind):
        self.kind = kind

    @property
    def package_kind(self) -> str:
        return "cask" if self.kind == ResourceKind.CASK else "formula"

    def probe(self, decl, ctx):
        if ctx.toolbox.packages.is_installed(decl.desired.name, self.package_kind):
            return ProbeResult.found(decl.desired.name, detail="installed")
        return ProbeResult.missing()

    def apply(self, decl, probe, ctx):
        ctx.toolbox.packages.install(decl.desired.name, self.package_kind)
        return decl.desired.name


class PackagesCurrentHandler(ResourceHandler):
    kind = ResourceKind.PACKAGES_CURRENT

    def probe(self, decl, ctx):
        outdated = ctx.toolbox.packages.outdated()
        if not outdated:
            return ProbeResult.found(detail="nothing outdated")
        return ProbeResult.missing(outdated, detail=f"{len(outdated)} outdated")

    def apply(self, decl, probe, ctx):
        ctx.toolbox.packages.upgrade()


class PackagesCleanHandler(ResourceHandler):
    kind = ResourceKind.PACKAGES_CLEAN

    def probe(self, decl, ctx):
        if ctx.toolbox.packages.cleanup_pending():
            return ProbeResult.missing(detail="stale downloads or orphaned dependencies")
        return ProbeResult.found(detail="nothing to clean")

    def apply(self, decl, probe, ctx):
        ctx.toolbox.packages.cleanup()


# ── Services ────────────────────────────────────────────────────


class ServiceHandler(ResourceHandler):
    """Start through the service manager, then wait for the process."""

    kind = ResourceKind.SERVICE_RUNNING

    def probe(self, decl, ctx):
        if ctx.toolbox.services.is_running(decl.desired.process):
            return ProbeResult.found(decl.desired.process, detail="running")
        return ProbeResult.missing()

    def apply(self, decl, probe, ctx):
        spec = decl.desired
        services = ctx.toolbox.services
        services.start(spec.name)
        if not ctx.wait_for(
            lambda: services.is_running(spec.process),
            spec.settle_attempts,
            spec.settle_delay,
        ):
            logger.warning(
                "%s not running after %d checks", spec.process, spec.settle_attempts
            )
        return spec.process


class ExternalCliHandler(ResourceHandler):
    """A command that must resolve on PATH."""

    kind = ResourceKind.EXTERNAL_CLI

    def probe(self, decl, ctx):
        path = ctx.toolbox.system.which(decl.desired.command)
        if path:
            return ProbeResult.found(path, detail=path)
        return ProbeResult.missing()

    def apply(self, decl, probe, ctx):
        spec = decl.desired
        system = ctx.toolbox.system

        if spec.installer == "npm":
            if not spec.package:
                raise InstallError(f"No package given for '{spec.command}'")
            ctx.toolbox.packages.install_global(spec.package, via="npm")
            return system.which(spec.command)

        if not spec.app:
            raise InstallError(f"No application given for '{spec.command}'")
        system.launch_app(spec.app)
        ctx.wait_for(lambda: system.which(spec.command) is not None, spec.attempts, spec.delay)
        return system.which(spec.command)


class EditorExtensionHandler(ResourceHandler):
    kind = ResourceKind.EDITOR_EXTENSION

    def probe(self, decl, ctx):
        installed = {e.lower() for e in ctx.toolbox.editor.list_extensions()}
        if decl.desired.id.lower() in installed:
            return ProbeResult.found(decl.desired.id)
        return ProbeResult.missing()

    def apply(self, decl, probe, ctx):
        ctx.toolbox.editor.install_extension(decl.desired.id)
        return decl.desired.id


# ── Files ───────────────────────────────────────────────────────


class FileBlockHandler(ResourceHandler):
    """Append-once marker block. Dedup is by the begin marker line."""

    kind = ResourceKind.FILE_BLOCK

    def probe(self, decl, ctx):
        spec = decl.desired
        if ctx.toolbox.files.contains_marker(spec.path, spec.marker):
            return ProbeResult.found(spec.path, detail="marker present")
        return ProbeResult.missing()

    def apply(self, decl, probe, ctx):
        spec = decl.desired
        ctx.toolbox.files.append_marked_block(spec.path, spec.marker, spec.content)
        return spec.path


class LineEditHandler(ResourceHandler):
    kind = ResourceKind.LINE_EDIT

    def probe(self, decl, ctx):
        spec = decl.desired
        if ctx.toolbox.files.contains(spec.path, spec.contains):
            return ProbeResult.found(spec.path)
        return ProbeResult.missing()

    def apply(self, decl, probe, ctx):
        spec = decl.desired
        ctx.toolbox.files.substitute_once(spec.path, spec.pattern, spec.replacement)
        return spec.path


class GitCloneHandler(ResourceHandler):
    kind = ResourceKind.GIT_CLONE

    def probe(self, decl, ctx):
        if ctx.toolbox.system.is_directory(decl.desired.dest):
            return ProbeResult.found(decl.desired.dest)
        return ProbeResult.missing()

    def apply(self, decl, probe, ctx):
        ctx.toolbox.vcs.clone(decl.desired.repo, decl.desired.dest)
        return decl.desired.dest


# ── Key-value configuration ─────────────────────────────────────


def coerce_value(value: Any, value_type: str) -> Any:
    """Normalize a stored or desired value for comparison.

    ``defaults read`` returns ``1``/``0`` for booleans and text for
    everything else, so both sides go through the same conversion.
    """
    if value is None:
        return None
    if value_type == "bool":
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes")
    if value_type in ("int", "float"):
        cast = int if value_type == "int" else float
        try:
            return cast(value)
        except (TypeError, ValueError):
            return str(value).strip()
    return str(value).strip()


class ConfigKeyHandler(ResourceHandler):
    """One key in defaults, git config or Homebrew settings.

    With a ``prompt``, any non-empty current value satisfies the
    declaration; otherwise the probe proposes the configured default and
    apply asks for the real value.
    """

    kind = ResourceKind.CONFIG_KEY

    def _read(self, spec: ConfigKeySpec, ctx: ReconcileContext) -> Any:
        if spec.store == "git":
            return ctx.toolbox.vcs.get_global(spec.key)
        return self._store(spec, ctx).read(spec.domain, spec.key)

    def _write(self, spec: ConfigKeySpec, value: Any, ctx: ReconcileContext) -> None:
        if spec.store == "git":
            ctx.toolbox.vcs.set_global(spec.key, str(value))
        else:
            self._store(spec, ctx).write(spec.domain, spec.key, value, spec.value_type)

    @staticmethod
    def _store(spec: ConfigKeySpec, ctx: ReconcileContext) -> PreferenceStore:
        return ctx.toolbox.preference_store(spec.store)

    def probe(self, decl, ctx):
        spec = decl.desired
        current = self._read(spec, ctx)

        if spec.prompt is not None:
            if current not in (None, ""):
                return ProbeResult.found(current)
            return ProbeResult.missing(proposed_value=spec.value, detail="not set")

        if coerce_value(current, spec.value_type) == coerce_value(spec.value, spec.value_type):
            return ProbeResult.found(current)
        return ProbeResult.missing(current, proposed_value=spec.value)

    def apply(self, decl, probe, ctx):
        spec = decl.desired
        value = spec.value

        if spec.prompt is not None:
            default = "" if probe.proposed_value is None else str(probe.proposed_value)
            value = ctx.toolbox.prompt.ask(spec.prompt, default=default).strip()
            if not value:
                raise PromptSkipped(f"No value given for {spec.key}")

        self._write(spec, value, ctx)

        if spec.restart:
            if not ctx.toolbox.services.kill_all(spec.restart):
                logger.debug("%s was not running; nothing to restart", spec.restart)
        return value


# ── Credentials ─────────────────────────────────────────────────


class SshKeyHandler(ResourceHandler):
    """Generate a key pair once. The comment may come from an earlier outcome."""

    kind = ResourceKind.SSH_KEY

    def probe(self, decl, ctx):
        if ctx.toolbox.ssh.exists(decl.desired.path):
            return ProbeResult.found(decl.desired.path, detail="key exists")
        return ProbeResult.missing()

    def apply(self, decl, probe, ctx):
        spec = decl.desired
        ssh = ctx.toolbox.ssh

        comment = None
        if spec.comment_from:
            comment = ctx.report.value_of(spec.comment_from)
        comment = comment or spec.default_comment

        ssh.generate(spec.path, spec.key_type, comment)
        if not ssh.add_to_agent(spec.path):
            logger.warning("Could not add %s to the SSH agent", spec.path)
        if ssh.copy_public_key(spec.path):
            logger.info("Public key %s.pub copied to clipboard", spec.path)
        return spec.path


# ── Dispatch table ──────────────────────────────────────────────


def default_handlers() -> dict[ResourceKind, ResourceHandler]:
    """One handler per kind."""
    handlers: list[ResourceHandler] = [
        PlatformHandler(),
        RosettaHandler(),
        PackageManagerHandler(),
        PackageHandler(ResourceKind.FORMULA),
        PackageHandler(ResourceKind.CASK),
        PackagesCurrentHandler(),
        PackagesCleanHandler(),
        ServiceHandler(),
        FileBlockHandler(),
        LineEditHandler(),
        ConfigKeyHandler(),
        ShellHandler(),
        ExternalCliHandler(),
        DirectoryHandler(),
        GitCloneHandler(),
        InstallerScriptHandler(),
        SshKeyHandler(),
        EditorExtensionHandler(),
    ]
    return {h.kind: h for h in handlers}


HANDLERS: dict[ResourceKind, ResourceHandler] = default_handlers()
