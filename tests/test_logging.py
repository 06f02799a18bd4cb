"""
Tests for the logging configuration.
"""

import logging
from io import StringIO

import pytest
from rich.console import Console
from rich.logging import RichHandler

from azqr.core.logging import NOISY_LOGGERS, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_handler(self):
        buffer = StringIO()
        setup_logging(level="debug", console=Console(file=buffer, width=200))

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], RichHandler)

        logging.getLogger("azqr.test").info("Starting scan")
        assert "Starting scan" in buffer.getvalue()

    def test_repeated_calls_do_not_stack_handlers(self):
        setup_logging(level="INFO", console=Console(file=StringIO()))
        setup_logging(level="INFO", console=Console(file=StringIO()))

        assert len(logging.getLogger().handlers) == 1

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "azqr.log"
        setup_logging(level=logging.WARNING, log_file=str(log_file), console=Console(file=StringIO()))

        logging.getLogger("azqr.test").warning("Diagnostics lookup failed")
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "WARNING" in content
        assert "Diagnostics lookup failed" in content
        assert "MainThread" in content

    def test_sdk_loggers_quieted(self):
        setup_logging(level="DEBUG", console=Console(file=StringIO()))

        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING

    def test_unknown_level_rejected(self):
        with pytest.raises(ValueError, match="Unknown log level"):
            setup_logging(level="verbose", console=Console(file=StringIO()))
