"""
Git adapter — global config and clones through the git CLI.
"""

from __future__ import annotations

import logging
from pathlib import Path

from macsetup.adapters.base import VcsConfig
from macsetup.adapters.shell.command import CommandRunner
from macsetup.core.errors import VcsError

logger = logging.getLogger(__name__)


class GitConfigAdapter(VcsConfig):
    def __init__(self, runner: CommandRunner | None = None):
        self._runner = runner or CommandRunner()

    def _git(self) -> str:
        path = self._runner.which("git")
        if path is None:
            raise VcsError("git is not installed")
        return path

    def get_global(self, key: str) -> str | None:
        result = self._runner.run([self._git(), "config", "--global", "--get", key], timeout=10)
        # Exit code 1 means "unset", not an error.
        if not result.ok:
            return None
        value = result.stdout.strip()
        return value or None

    def set_global(self, key: str, value: str) -> None:
        result = self._runner.run([self._git(), "config", "--global", key, value], timeout=10)
        if not result.ok:
            raise VcsError(f"git config --global {key} failed: {result.error}")

    def clone(self, repo: str, dest: str) -> None:
        Path(dest).parent.mkdir(parents=True, exist_ok=True)
        result = self._runner.run([self._git(), "clone", "--depth", "1", repo, dest], timeout=600)
        if not result.ok:
            raise VcsError(f"git clone {repo} failed: {result.error}")
        logger.info("Cloned %s into %s", repo, dest)
