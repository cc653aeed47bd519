"""Tests for logging service configuration."""

import logging
import tempfile
from pathlib import Path
from unittest.mock import patch

from dues.services.logging import get_log_level, setup_server_logging


class TestServerLogging:
    """Test server logging configuration."""

    def setup_method(self):
        """Save original handlers before each test."""
        self.root_logger = logging.getLogger()
        self.original_handlers = self.root_logger.handlers.copy()
        self.original_level = self.root_logger.level

    def teardown_method(self):
        """Restore original handlers after each test."""
        for handler in self.root_logger.handlers[:]:
            handler.close()
            self.root_logger.removeHandler(handler)
        for handler in self.original_handlers:
            self.root_logger.addHandler(handler)
        self.root_logger.setLevel(self.original_level)

    def test_creates_log_directory(self) -> None:
        """Verify the log directory is created when missing."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "nested" / "server.log"
            assert not log_file.parent.exists()

            setup_server_logging(str(log_file))

            assert log_file.parent.exists()

    def test_stdout_and_file_handlers(self) -> None:
        """Verify exactly one stream and one file handler are installed."""
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_server_logging(str(Path(temp_dir) / "server.log"))

            handlers = self.root_logger.handlers
            assert len(handlers) == 2
            assert any(isinstance(h, logging.FileHandler) for h in handlers)
            assert any(
                isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
                for h in handlers
            )

    def test_messages_reach_file(self) -> None:
        """Verify dues loggers write through to the log file."""
        with tempfile.TemporaryDirectory() as temp_dir:
            log_file = Path(temp_dir) / "server.log"
            setup_server_logging(str(log_file))

            logging.getLogger("dues.services.ledger_service").warning("Amount mismatch for member_id=1")
            for handler in self.root_logger.handlers:
                handler.flush()

            content = log_file.read_text()
            assert "dues.services.ledger_service - WARNING - Amount mismatch for member_id=1" in content

    def test_level_from_environment(self) -> None:
        """Verify LOG_LEVEL selects the root level."""
        with patch.dict("os.environ", {"LOG_LEVEL": "debug"}):
            assert get_log_level() == logging.DEBUG
        with patch.dict("os.environ", {"LOG_LEVEL": "bogus"}):
            assert get_log_level() == logging.INFO

    def test_sqlalchemy_engine_kept_quiet(self) -> None:
        """Verify SQL statements are not logged at DEBUG unless echo is enabled."""
        with tempfile.TemporaryDirectory() as temp_dir, patch.dict("os.environ", {"LOG_LEVEL": "DEBUG"}):
            setup_server_logging(str(Path(temp_dir) / "server.log"))
            assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_explicit_level_wins_over_environment(self) -> None:
        """Verify the configured level name overrides LOG_LEVEL."""
        with tempfile.TemporaryDirectory() as temp_dir, patch.dict("os.environ", {"LOG_LEVEL": "ERROR"}):
            setup_server_logging(str(Path(temp_dir) / "server.log"), level_name="warning")
            assert self.root_logger.level == logging.WARNING

    def test_sql_echo_keeps_engine_logger_at_root_level(self) -> None:
        """Verify DATABASE_ECHO lets SQL statements through at INFO."""
        with tempfile.TemporaryDirectory() as temp_dir:
            setup_server_logging(str(Path(temp_dir) / "server.log"), level_name="INFO", sql_echo=True)
            assert logging.getLogger("sqlalchemy.engine").level == logging.INFO
