"""
Tests for observability — logging setup.
"""

import logging
from pathlib import Path

import pytest

from graalpack.core.observability.logging_config import (
    LEVEL_ENV,
    _parse_level,
    resolve_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParseLevel:
    def test_names(self):
        assert _parse_level("debug") == logging.DEBUG
        assert _parse_level("INFO") == logging.INFO

    def test_fallbacks(self):
        assert _parse_level(None) == logging.WARNING
        assert _parse_level("") == logging.WARNING
        assert _parse_level("chatty") == logging.WARNING


class TestResolveLevel:
    def test_flag_precedence(self):
        env = {LEVEL_ENV: "INFO"}
        assert resolve_level(debug=True, verbose=True, quiet=True, environ=env) == "DEBUG"
        assert resolve_level(verbose=True, quiet=True, environ=env) == "INFO"
        assert resolve_level(quiet=True, environ=env) == "ERROR"

    def test_environment_then_default(self):
        assert resolve_level(environ={LEVEL_ENV: "debug"}) == "debug"
        assert resolve_level(environ={LEVEL_ENV: ""}) == "WARNING"
        assert resolve_level() == "WARNING"


class TestSetupLogging:
    def test_single_console_handler(self):
        setup_logging("INFO")
        setup_logging("INFO")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.INFO

    def test_console_writes_to_stderr(self, capsys):
        setup_logging("WARNING")
        logging.getLogger("graalpack.test").warning("layer discarded")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "layer discarded" in captured.err

    def test_file_handler_level(self, tmp_path: Path):
        log_file = tmp_path / "build.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        logging.getLogger("graalpack.test").debug("dispatching install-sdk")
        for handler in root.handlers:
            handler.flush()
        assert "dispatching install-sdk" in log_file.read_text()

    def test_console_format_follows_level(self):
        setup_logging("WARNING")
        assert logging.getLogger().handlers[0].formatter._fmt == "%(message)s"
        setup_logging("DEBUG")
        assert "%(lineno)d" in logging.getLogger().handlers[0].formatter._fmt
