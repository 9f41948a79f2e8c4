"""
Tests for logging setup.
"""

import logging
from pathlib import Path

from atomic_graph.config import LoggingSettings
from atomic_graph.utils.logging import (
    ROOT_LOGGER_NAME,
    get_logger,
    get_logger_with_context,
    setup_logging,
)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_file_handler(self, temp_dir: Path):
        log_path = temp_dir / "logs" / "graph.log"
        settings = LoggingSettings(file_path=str(log_path), log_to_console=False)

        logger = setup_logging(settings)
        get_logger("graph_store.branches").info("expanded")
        for handler in logger.handlers:
            handler.flush()

        assert log_path.exists()
        assert "expanded" in log_path.read_text()

    def test_level_override(self):
        logger = setup_logging(LoggingSettings(level="INFO"), level="DEBUG")

        assert logger.level == logging.DEBUG

    def test_repeat_call_updates_level(self):
        setup_logging(level="WARNING")
        logger = setup_logging(level="DEBUG")

        assert logger.level == logging.DEBUG
        assert all(h.level == logging.DEBUG for h in logger.handlers)

    def test_module_loggers_are_children(self):
        assert get_logger("atomic_graph.storage").name == "atomic_graph.storage"
        assert get_logger("storage").name == f"{ROOT_LOGGER_NAME}.storage"
        assert get_logger().name == ROOT_LOGGER_NAME


class TestLoggerAdapter:

    def test_context_appended(self, caplog):
        log = get_logger_with_context(__name__, root="unit-42")

        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
            log.info("Traversal started")

        assert "Traversal started [root=unit-42]" in caplog.text
