"""
Defaults adapter — macOS preferences through the ``defaults`` CLI.

``domain`` may be a bundle id (``com.apple.finder``) or an absolute
plist path, which ``defaults`` accepts in the same position.
"""

from __future__ import annotations

from typing import Any

from macsetup.adapters.base import PreferenceStore
from macsetup.adapters.shell.command import CommandRunner
from macsetup.core.errors import PreferenceError

_TYPE_FLAGS = {
    "bool": "-bool",
    "int": "-int",
    "float": "-float",
    "string": "-string",
}


def format_value(value: Any, value_type: str) -> str:
    if value_type == "bool":
        return "true" if value else "false"
    return str(value)


class DefaultsStore(PreferenceStore):
    def __init__(self, runner: CommandRunner | None = None):
        self._runner = runner or CommandRunner()

    def read(self, domain: str, key: str) -> Any | None:
        result = self._runner.run(["defaults", "read", domain, key], timeout=30)
        if not result.ok:
            return None
        return result.stdout.strip()

    def write(self, domain: str, key: str, value: Any, value_type: str = "string") -> None:
        flag = _TYPE_FLAGS.get(value_type)
        if flag is None:
            raise PreferenceError(f"Unsupported value type: {value_type}")

        argv = ["defaults", "write", domain, key, flag, format_value(value, value_type)]
        result = self._runner.run(argv, timeout=30)
        if not result.ok:
            raise PreferenceError(f"defaults write {domain} {key} failed: {result.error}")
