"""
Text-block editor — idempotent edits to shell and SSH config files.

Blocks are delimited by marker lines::

    # >>> macbook-setup >>>
    ...content...
    # <<< macbook-setup <<<

The begin marker is the dedupe key: a file that contains it (as an exact
substring) already has the block, and nothing is appended again.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from macsetup.adapters.base import TextBlockEditor
from macsetup.core.errors import BlockWriteError

logger = logging.getLogger(__name__)


def begin_marker(marker: str) -> str:
    return f"# >>> {marker} >>>"


def end_marker(marker: str) -> str:
    return f"# <<< {marker} <<<"


def render_block(marker: str, content: str) -> str:
    """Full block text, terminated by a newline."""
    body = content if content.endswith("\n") or not content else content + "\n"
    return f"{begin_marker(marker)}\n{body}{end_marker(marker)}\n"


def append_text(existing: str, block: str) -> str:
    """The text to append after ``existing`` so the block starts on its own line."""
    if existing and not existing.endswith("\n"):
        return "\n" + block
    return block


class MarkedBlockEditor(TextBlockEditor):
    """Marker-block edits on the real filesystem."""

    def _read(self, path: Path) -> str:
        if not path.is_file():
            return ""
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise BlockWriteError(f"Cannot read {path}: {e}") from e

    def contains(self, path: str, text: str) -> bool:
        return text in self._read(Path(path))

    def contains_marker(self, path: str, marker: str) -> bool:
        return self.contains(path, begin_marker(marker))

    def append_marked_block(self, path: str, marker: str, content: str) -> None:
        target = Path(path)
        existing = self._read(target)
        if begin_marker(marker) in existing:
            logger.debug("Marker %s already present in %s", marker, target)
            return

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with target.open("a", encoding="utf-8") as f:
                f.write(append_text(existing, render_block(marker, content)))
        except OSError as e:
            raise BlockWriteError(f"Cannot write {target}: {e}") from e
        logger.info("Appended %s block to %s", marker, target)

    def substitute_once(self, path: str, pattern: str, replacement: str) -> None:
        target = Path(path)
        existing = self._read(target)
        updated, count = re.subn(pattern, replacement, existing, count=1)
        if count == 0:
            raise BlockWriteError(f"Pattern {pattern!r} not found in {target}")

        try:
            target.write_text(updated, encoding="utf-8")
        except OSError as e:
            raise BlockWriteError(f"Cannot write {target}: {e}") from e
        logger.info("Edited %s", target)
