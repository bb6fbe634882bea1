"""
Tests for meshvis.logging_setup module.
"""

import io
import logging
from logging.handlers import RotatingFileHandler

from meshvis.logging_setup import ColorFormatter, format_block, setup_logging


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_only(self):
        """Test a single stderr-style handler at the requested level."""
        stream = io.StringIO()
        logger = setup_logging(log_level="WARNING", stream=stream)

        assert len(logger.handlers) == 1
        logging.getLogger("meshvis.server").info("hidden")
        logging.getLogger("meshvis.server").warning("shown")
        assert stream.getvalue() == "WARNING: shown\n"

    def test_repeat_calls_replace_handlers(self):
        """Test calling twice doesn't duplicate output."""
        setup_logging(stream=io.StringIO())
        logger = setup_logging(stream=io.StringIO())
        assert len(logger.handlers) == 1

    def test_file_handler(self, tmp_path):
        """Test file logging captures debug records."""
        log_file = tmp_path / "logs" / "meshvis.log"
        logger = setup_logging(log_to_file=True, stream=io.StringIO(), log_file=str(log_file))

        assert any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
        logging.getLogger("meshvis.reader").debug("frame details")
        for handler in logger.handlers:
            handler.flush()
        assert "frame details" in log_file.read_text()


class TestFormatting:
    """Tests for formatting helpers."""

    def test_color_formatter_restores_levelname(self):
        """Test coloring doesn't leak into other handlers."""
        record = logging.LogRecord("meshvis", logging.ERROR, __file__, 1, "boom", None, None)
        text = ColorFormatter("%(levelname)s %(message)s").format(record)

        assert "\033[31m" in text
        assert record.levelname == "ERROR"

    def test_format_block(self):
        """Test block title and indented lines."""
        assert format_block("PUBLISH", ["a", "b"]) == "[PUBLISH]\n  a\n  b"
