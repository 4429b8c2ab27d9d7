"""
System adapter — host queries and one-off actions on macOS.

Platform and architecture come from the ``platform`` module; the login
shell comes from the password database, which reflects ``chsh`` without
a new session.
"""

from __future__ import annotations

import logging
import os
import platform
import pwd
from pathlib import Path

from macsetup.adapters.base import SystemFacade
from macsetup.adapters.shell.command import CommandRunner
from macsetup.core.errors import InstallError

logger = logging.getLogger(__name__)


class MacSystem(SystemFacade):
    def __init__(self, runner: CommandRunner | None = None):
        self._runner = runner or CommandRunner()

    def platform(self) -> str:
        return platform.system()

    def machine(self) -> str:
        return platform.machine()

    def which(self, command: str) -> str | None:
        return self._runner.which(command)

    def login_shell(self) -> str:
        return pwd.getpwuid(os.getuid()).pw_shell

    def change_login_shell(self, shell: str) -> None:
        result = self._runner.run(["chsh", "-s", shell], timeout=120)
        if not result.ok:
            raise InstallError(f"chsh -s {shell} failed: {result.error}")

    def is_directory(self, path: str, mode: int | None = None) -> bool:
        p = Path(path)
        if not p.is_dir():
            return False
        if mode is None:
            return True
        return (p.stat().st_mode & 0o777) == mode

    def ensure_directory(self, path: str, mode: int | None = None) -> None:
        p = Path(path)
        p.mkdir(parents=True, exist_ok=True)
        if mode is not None:
            p.chmod(mode)

    def path_exists(self, path: str) -> bool:
        return Path(path).exists()

    def run_installer(self, url: str, args: tuple[str, ...] = ()) -> None:
        script = self._runner.run(["curl", "-fsSL", url], timeout=120)
        if not script.ok:
            raise InstallError(f"Cannot download {url}: {script.error}")

        result = self._runner.run(["sh", "-c", script.stdout, "", *args])
        if not result.ok:
            raise InstallError(f"Installer {url} failed: {result.error}")

    def launch_app(self, name: str) -> bool:
        result = self._runner.run(["open", "-g", "-a", name], timeout=30)
        if not result.ok:
            logger.warning("Cannot open %s: %s", name, result.error)
        return result.ok

    def install_rosetta(self) -> None:
        result = self._runner.run(
            ["softwareupdate", "--install-rosetta", "--agree-to-license"],
            timeout=900,
        )
        if not result.ok:
            raise InstallError(f"Rosetta install failed: {result.error}")
