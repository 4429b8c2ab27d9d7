"""
SSH key adapter — ssh-keygen, ssh-add and the clipboard.
"""

from __future__ import annotations

import logging
from pathlib import Path

from macsetup.adapters.base import SshKeys
from macsetup.adapters.shell.command import CommandRunner
from macsetup.core.errors import InstallError

logger = logging.getLogger(__name__)


class SshKeyAdapter(SshKeys):
    def __init__(self, runner: CommandRunner | None = None):
        self._runner = runner or CommandRunner()

    def exists(self, path: str) -> bool:
        return Path(path).is_file()

    def generate(self, path: str, key_type: str, comment: str) -> None:
        argv = ["ssh-keygen", "-t", key_type, "-C", comment, "-f", path, "-N", ""]
        result = self._runner.run(argv, timeout=60)
        if not result.ok:
            raise InstallError(f"ssh-keygen failed: {result.error}")

    def add_to_agent(self, path: str) -> bool:
        result = self._runner.run(["ssh-add", "--apple-use-keychain", path], timeout=30)
        if not result.ok:
            logger.warning("ssh-add failed for %s: %s", path, result.error)
        return result.ok

    def copy_public_key(self, path: str) -> bool:
        pub = Path(f"{path}.pub")
        if not pub.is_file():
            return False
        result = self._runner.run(["pbcopy"], input_text=pub.read_text(encoding="utf-8"), timeout=10)
        return result.ok
