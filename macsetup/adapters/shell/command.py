"""
Command runner — the single place where ``subprocess.run`` is called.

Every real facade shells out through a ``CommandRunner``. Results are
returned, never raised: facades decide which non-zero exits are errors
and raise their own typed exceptions.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from dataclasses import dataclass
from typing import Mapping, Sequence

logger = logging.getLogger(__name__)

# Homebrew lands here and is not on PATH until the shell profile is reloaded.
DEFAULT_EXTRA_PATHS = ("/opt/homebrew/bin", "/usr/local/bin")


@dataclass(frozen=True)
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def error(self) -> str:
        """Best human-readable error text for a failed command."""
        return self.stderr.strip() or f"{self.argv[0]} exited with code {self.returncode}"


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


class CommandRunner:
    """Run external commands with consistent logging.

    ``extra_paths`` are appended to PATH for lookups and child processes,
    so binaries installed during this run resolve without a new shell.
    """

    def __init__(
        self,
        extra_paths: Sequence[str] = DEFAULT_EXTRA_PATHS,
        default_timeout: int = 1800,
    ):
        self._extra_paths = tuple(extra_paths)
        self._default_timeout = default_timeout

    def _path(self) -> str:
        parts = os.environ.get("PATH", "").split(os.pathsep)
        parts += [p for p in self._extra_paths if p not in parts]
        return os.pathsep.join(p for p in parts if p)

    def which(self, command: str) -> str | None:
        """Resolve a command on PATH (plus the extra paths)."""
        return shutil.which(command, path=self._path())

    def run(
        self,
        argv: Sequence[str],
        *,
        timeout: int | None = None,
        input_text: str | None = None,
        env: Mapping[str, str] | None = None,
        cwd: str | None = None,
    ) -> CommandResult:
        argv_list = list(argv)
        timeout = timeout or self._default_timeout
        logger.debug("CMD %s", format_argv(argv_list))

        child_env = dict(os.environ, PATH=self._path(), **(env or {}))
        start = time.monotonic()
        try:
            p = subprocess.run(
                argv_list,
                input=input_text,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=child_env,
                cwd=cwd,
            )
        except FileNotFoundError:
            return CommandResult(argv=argv_list, returncode=127, stderr=f"{argv_list[0]}: command not found")
        except subprocess.TimeoutExpired:
            return CommandResult(argv=argv_list, returncode=124, stderr=f"Command timed out after {timeout}s")

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if p.stdout:
            logger.debug("STDOUT %s", p.stdout.strip()[-2000:])
        if p.stderr:
            logger.debug("STDERR %s", p.stderr.strip()[-2000:])

        return CommandResult(
            argv=argv_list,
            returncode=p.returncode,
            stdout=p.stdout or "",
            stderr=p.stderr or "",
            elapsed_ms=elapsed_ms,
        )
