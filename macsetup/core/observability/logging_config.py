"""
Logging configuration — set up once by the CLI before anything runs.

Every module does ``logger = logging.getLogger(__name__)`` and inherits
this config. Per-resource progress for the user goes through click, so
the console logger stays quiet unless asked.

Console level precedence:
    CLI flag  >  MACSETUP_LOG_LEVEL  >  WARNING

A log file is opt-in through MACSETUP_LOG_FILE (its level through
MACSETUP_LOG_FILE_LEVEL) and always gets the full diagnostic format.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

LOG_LEVEL_ENV_VAR = "MACSETUP_LOG_LEVEL"
LOG_FILE_ENV_VAR = "MACSETUP_LOG_FILE"
LOG_FILE_LEVEL_ENV_VAR = "MACSETUP_LOG_FILE_LEVEL"

_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"

# (threshold, format, datefmt), first threshold >= level wins.
_CONSOLE_FORMATS = (
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)


def resolve_level(flag_level: str | None = None) -> str:
    """Pick the console level: explicit flag, then env var, then WARNING."""
    return flag_level or os.environ.get(LOG_LEVEL_ENV_VAR) or "WARNING"


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = next((f, d) for threshold, f, d in _CONSOLE_FORMATS if level <= threshold)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_DETAILED, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            Unknown names fall back to WARNING.
        log_file: Log file path. Defaults to ``MACSETUP_LOG_FILE``.
        log_file_level: File level name. Defaults to
            ``MACSETUP_LOG_FILE_LEVEL``, then to ``level``.
    """
    console_level = _parse_level(level)
    handlers = [_console_handler(console_level)]

    log_file = log_file or os.environ.get(LOG_FILE_ENV_VAR)
    if log_file:
        file_level_name = log_file_level or os.environ.get(LOG_FILE_LEVEL_ENV_VAR)
        file_level = _parse_level(file_level_name) if file_level_name else console_level
        handlers.append(_file_handler(Path(log_file).expanduser(), file_level))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Numeric level for a level name; WARNING when unknown."""
    if not level:
        return logging.WARNING
    return logging.getLevelNamesMapping().get(level.upper(), logging.WARNING)
