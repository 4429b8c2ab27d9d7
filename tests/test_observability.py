"""
Tests for observability — logging setup and level resolution.
"""

import logging
from pathlib import Path

from macsetup.core.observability.logging_config import resolve_level, setup_logging


class TestResolveLevel:
    def test_default(self):
        assert resolve_level() == "WARNING"

    def test_env(self, monkeypatch):
        monkeypatch.setenv("MACSETUP_LOG_LEVEL", "INFO")
        assert resolve_level() == "INFO"

    def test_flag_beats_env(self, monkeypatch):
        monkeypatch.setenv("MACSETUP_LOG_LEVEL", "INFO")
        assert resolve_level("DEBUG") == "DEBUG"


class TestSetupLogging:
    def test_console_level(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1
        assert root.handlers[0].level == logging.INFO

    def test_unknown_level_falls_back(self):
        setup_logging("LOUD")
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "macsetup.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2

        logging.getLogger("macsetup.test").debug("probe details")
        for handler in root.handlers:
            handler.flush()
        assert "probe details" in log_file.read_text()

    def test_file_from_env(self, tmp_path: Path, monkeypatch):
        log_file = tmp_path / "env.log"
        monkeypatch.setenv("MACSETUP_LOG_FILE", str(log_file))
        setup_logging("ERROR")

        assert log_file.is_file()
        assert any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging("INFO")
        setup_logging("DEBUG")
        assert len(logging.getLogger().handlers) == 1
