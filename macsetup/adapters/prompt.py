"""
Prompt adapters — interactive input through click, or none at all.
"""

from __future__ import annotations

import click

from macsetup.adapters.base import Prompt


class ClickPrompt(Prompt):
    """Ask on the terminal; empty input keeps the default."""

    def ask(self, text: str, default: str = "") -> str:
        answer = click.prompt(
            text,
            default=default,
            show_default=bool(default),
            type=str,
        )
        return (answer or "").strip() or default


class NonInteractivePrompt(Prompt):
    """Never asks. Always answers with the default."""

    def ask(self, text: str, default: str = "") -> str:
        return default
