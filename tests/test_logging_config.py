# tests/test_logging_config.py

"""Tests for the per-run logging configuration."""

import logging
import tempfile
import unittest
from pathlib import Path

from rental_search.config.logging_config import setup_logging


class TestLoggingConfig(unittest.TestCase):
    """Verify logging setup behaviour."""

    def setUp(self) -> None:
        """Clean up the rental_search logger before each test."""
        self._tmp = tempfile.TemporaryDirectory()
        self.logs_dir = Path(self._tmp.name) / "logs"
        self._reset()
        self.addCleanup(self._tmp.cleanup)
        self.addCleanup(self._reset)

    def _reset(self) -> None:
        root_logger = logging.getLogger("rental_search")
        for handler in list(root_logger.handlers):
            handler.close()
            root_logger.removeHandler(handler)

    def test_setup_creates_log_file(self) -> None:
        """setup_logging returns a path that exists on disk."""
        log_path = setup_logging(self.logs_dir)
        self.assertTrue(log_path.exists())

    def test_log_file_naming_convention(self) -> None:
        """Log file name matches run_YYYYMMDD_HHMMSS.log format."""
        log_path = setup_logging(self.logs_dir)
        self.assertRegex(log_path.name, r"^run_\d{8}_\d{6}\.log$")

    def test_file_handler_level_debug(self) -> None:
        """File handler should be set to DEBUG level."""
        setup_logging(self.logs_dir)
        root_logger = logging.getLogger("rental_search")
        file_handlers = [
            h
            for h in root_logger.handlers
            if isinstance(h, logging.FileHandler)
        ]
        self.assertEqual(len(file_handlers), 1)
        self.assertEqual(file_handlers[0].level, logging.DEBUG)

    def test_console_handler_level(self) -> None:
        """Console handler uses the requested level."""
        setup_logging(self.logs_dir, console_level=logging.INFO)
        root_logger = logging.getLogger("rental_search")
        stream_handlers = [
            h
            for h in root_logger.handlers
            if isinstance(h, logging.StreamHandler)
            and not isinstance(h, logging.FileHandler)
        ]
        self.assertEqual(len(stream_handlers), 1)
        self.assertEqual(stream_handlers[0].level, logging.INFO)

    def test_repeated_calls_no_duplicate_handlers(self) -> None:
        """Calling setup_logging twice does not duplicate handlers."""
        setup_logging(self.logs_dir)
        root_logger = logging.getLogger("rental_search")
        count_before = len(root_logger.handlers)
        setup_logging(self.logs_dir)
        self.assertEqual(len(root_logger.handlers), count_before)

    def test_child_loggers_reach_file(self) -> None:
        """Records from rental_search.<area> land in the run file."""
        log_path = setup_logging(self.logs_dir)
        logging.getLogger("rental_search.vrbo").debug("captured %d", 3)
        for handler in logging.getLogger("rental_search").handlers:
            handler.flush()
        content = log_path.read_text(encoding="utf-8")
        self.assertIn("rental_search.vrbo", content)
        self.assertIn("captured 3", content)

    def test_noisy_libraries_capped(self) -> None:
        """Selenium's own logger is raised to WARNING."""
        setup_logging(self.logs_dir)
        self.assertEqual(
            logging.getLogger("selenium").level, logging.WARNING
        )


if __name__ == "__main__":
    unittest.main()
