"""
VS Code adapter — extensions through the ``code`` shim.
"""

from __future__ import annotations

from macsetup.adapters.base import EditorCli
from macsetup.adapters.shell.command import CommandRunner
from macsetup.core.errors import InstallError


class VsCodeCli(EditorCli):
    def __init__(self, runner: CommandRunner | None = None, command: str = "code"):
        self._runner = runner or CommandRunner()
        self._command = command

    def _code(self) -> str:
        path = self._runner.which(self._command)
        if path is None:
            raise InstallError(f"'{self._command}' CLI not found on PATH")
        return path

    def list_extensions(self) -> list[str]:
        result = self._runner.run([self._code(), "--list-extensions"], timeout=60)
        if not result.ok:
            raise InstallError(f"{self._command} --list-extensions failed: {result.error}")
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def install_extension(self, extension_id: str) -> None:
        result = self._runner.run(
            [self._code(), "--install-extension", extension_id, "--force"],
            timeout=300,
        )
        if not result.ok:
            raise InstallError(f"Extension {extension_id} failed: {result.error}")
