"""
Homebrew adapter — formulas, casks, maintenance and npm globals.

Uses the brew CLI through ``CommandRunner``. Listing calls are not
cached: every probe re-reads the real package state.
"""

from __future__ import annotations

import logging
from typing import Any

from macsetup.adapters.base import PackageKind, PackageManager, PreferenceStore
from macsetup.adapters.shell.command import CommandResult, CommandRunner
from macsetup.core.errors import InstallError, PreferenceError

logger = logging.getLogger(__name__)

INSTALL_SCRIPT_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"


class HomebrewAdapter(PackageManager):
    def __init__(self, runner: CommandRunner | None = None):
        self._runner = runner or CommandRunner()

    def _brew(self) -> str:
        path = self._runner.which("brew")
        if path is None:
            raise InstallError("brew is not installed")
        return path

    def _run_brew(self, *args: str, timeout: int | None = None) -> CommandResult:
        return self._runner.run([self._brew(), *args], timeout=timeout)

    def _checked(self, *args: str) -> CommandResult:
        result = self._run_brew(*args)
        if not result.ok:
            raise InstallError(f"brew {' '.join(args)} failed: {result.error}")
        return result

    # ── Manager ─────────────────────────────────────────────────

    def is_manager_present(self) -> bool:
        return self._runner.which("brew") is not None

    def install_manager(self) -> None:
        script = self._runner.run(["curl", "-fsSL", INSTALL_SCRIPT_URL], timeout=120)
        if not script.ok:
            raise InstallError(f"Cannot download Homebrew installer: {script.error}")

        result = self._runner.run(
            ["/bin/bash", "-c", script.stdout],
            env={"NONINTERACTIVE": "1"},
        )
        if not result.ok:
            raise InstallError(f"Homebrew installer failed: {result.error}")

    # ── Packages ────────────────────────────────────────────────

    def is_installed(self, name: str, kind: PackageKind) -> bool:
        result = self._run_brew("list", f"--{kind}", "-1", timeout=120)
        if not result.ok:
            return False
        return name in result.stdout.split()

    def install(self, name: str, kind: PackageKind) -> None:
        args = ["install", "--cask", name] if kind == "cask" else ["install", name]
        logger.info("Installing %s %s", kind, name)
        self._checked(*args)

    def outdated(self) -> list[str]:
        result = self._run_brew("outdated", "--quiet", timeout=300)
        if not result.ok:
            raise InstallError(f"brew outdated failed: {result.error}")
        return result.stdout.split()

    def upgrade(self) -> None:
        self._checked("update")
        self._checked("upgrade")

    def cleanup_pending(self) -> bool:
        cleanup = self._run_brew("cleanup", "-s", "--dry-run", timeout=300)
        autoremove = self._run_brew("autoremove", "--dry-run", timeout=300)
        return bool(cleanup.stdout.strip()) or bool(autoremove.stdout.strip())

    def cleanup(self) -> None:
        self._checked("cleanup", "-s")
        self._checked("autoremove")

    # ── Language managers ───────────────────────────────────────

    def install_global(self, package: str, via: str) -> None:
        if via != "npm":
            raise InstallError(f"Unsupported global installer: {via}")
        npm = self._runner.which("npm")
        if npm is None:
            raise InstallError("npm not found")
        result = self._runner.run([npm, "install", "-g", package])
        if not result.ok:
            raise InstallError(f"npm install -g {package} failed: {result.error}")


class HomebrewSettingsStore(PreferenceStore):
    """Homebrew's own settings, exposed as a preference store.

    Only the ``analytics`` key is supported; ``domain`` is ignored.
    """

    def __init__(self, runner: CommandRunner | None = None):
        self._runner = runner or CommandRunner()

    def read(self, domain: str, key: str) -> Any | None:
        if key != "analytics":
            return None
        brew = self._runner.which("brew")
        if brew is None:
            return None
        result = self._runner.run([brew, "analytics", "state"], timeout=60)
        if not result.ok:
            return None
        return "disabled" not in result.stdout.lower()

    def write(self, domain: str, key: str, value: Any, value_type: str = "string") -> None:
        if key != "analytics":
            raise PreferenceError(f"Unknown Homebrew setting: {key}")
        brew = self._runner.which("brew")
        if brew is None:
            raise PreferenceError("brew is not installed")
        result = self._runner.run([brew, "analytics", "on" if value else "off"], timeout=60)
        if not result.ok:
            raise PreferenceError(f"brew analytics failed: {result.error}")
