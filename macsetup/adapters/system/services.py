"""
Service adapter — ``brew services`` for start, ``pgrep`` for liveness.
"""

from __future__ import annotations

import logging

from macsetup.adapters.base import ServiceManager
from macsetup.adapters.shell.command import CommandRunner
from macsetup.core.errors import ServiceError

logger = logging.getLogger(__name__)


class BrewServicesAdapter(ServiceManager):
    def __init__(self, runner: CommandRunner | None = None):
        self._runner = runner or CommandRunner()

    def is_running(self, process: str) -> bool:
        return self._runner.run(["pgrep", process], timeout=10).ok

    def start(self, service: str) -> None:
        brew = self._runner.which("brew")
        if brew is None:
            raise ServiceError("brew is not installed")
        result = self._runner.run([brew, "services", "start", service], timeout=120)
        if not result.ok:
            raise ServiceError(f"brew services start {service} failed: {result.error}")

    def kill_all(self, process: str) -> bool:
        result = self._runner.run(["killall", process], timeout=10)
        if not result.ok:
            logger.debug("killall %s: %s", process, result.error)
        return result.ok
