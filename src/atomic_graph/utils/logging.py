"""
Logging configuration for the atomic knowledge graph.

All module loggers hang off a single application logger so one call
to setup_logging() controls console output, file rotation and level
for the whole package.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from atomic_graph.config.settings import LoggingSettings


ROOT_LOGGER_NAME = "atomic_graph"

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_logging_configured = False


def setup_logging(
    settings: "LoggingSettings | None" = None,
    level: str | None = None,
) -> logging.Logger:
    """
    Configure the application logging system.

    Safe to call more than once; only the first call installs handlers
    until reset_logging() is used.

    Args:
        settings: Logging configuration. If None, console logging at INFO.
        level: Optional level name overriding the configured level
               (the CLI passes DEBUG for --verbose).

    Returns:
        The application root logger.
    """
    global _logging_configured

    logger = logging.getLogger(ROOT_LOGGER_NAME)

    if _logging_configured:
        if level is not None:
            resolved = getattr(logging, level.upper())
            logger.setLevel(resolved)
            for handler in logger.handlers:
                handler.setLevel(resolved)
        return logger

    logger.handlers.clear()

    if settings is None:
        level_name = "INFO"
        log_format = DEFAULT_FORMAT
        date_format = DEFAULT_DATE_FORMAT
        log_to_console = True
        file_path = None
        max_file_size_mb = 10
        backup_count = 3
    else:
        level_name = settings.level
        log_format = settings.format
        date_format = settings.date_format
        log_to_console = settings.log_to_console
        file_path = settings.file_path
        max_file_size_mb = settings.max_file_size_mb
        backup_count = settings.backup_count

    resolved_level = getattr(logging, (level or level_name).upper())
    logger.setLevel(resolved_level)

    formatter = logging.Formatter(fmt=log_format, datefmt=date_format)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(resolved_level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if file_path is not None:
        logger.addHandler(
            _create_file_handler(
                file_path=file_path,
                max_bytes=max_file_size_mb * 1024 * 1024,
                backup_count=backup_count,
                level=resolved_level,
                formatter=formatter,
            )
        )

    # Handlers live on our logger only
    logger.propagate = False

    _logging_configured = True

    return logger


def _create_file_handler(
    file_path: Path,
    max_bytes: int,
    backup_count: int,
    level: int,
    formatter: logging.Formatter,
) -> RotatingFileHandler:
    """Create a rotating file handler, creating the log directory if needed."""
    file_path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        filename=str(file_path),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)

    return handler


def get_logger(name: str | None = None) -> logging.Logger:
    """
    Get a logger that is a child of the application root logger.

    Args:
        name: Module name, typically __name__. None returns the root logger.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Snapshot built")
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER_NAME)

    if name.startswith(ROOT_LOGGER_NAME):
        return logging.getLogger(name)

    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def reset_logging() -> None:
    """Close and remove all handlers so setup_logging() can run again."""
    global _logging_configured

    logger = logging.getLogger(ROOT_LOGGER_NAME)

    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    _logging_configured = False


class LoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that appends fixed context to every message.

    Example:
        >>> logger = LoggerAdapter(get_logger(__name__), {"root": "unit-42"})
        >>> logger.info("Traversal started")  # "Traversal started [root=unit-42]"
    """

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        if self.extra:
            context_str = " ".join(f"[{k}={v}]" for k, v in self.extra.items())
            msg = f"{msg} {context_str}"
        return msg, kwargs


def get_logger_with_context(
    name: str | None = None,
    **context: str,
) -> LoggerAdapter:
    """Get a logger whose messages all carry the given key-value context."""
    return LoggerAdapter(get_logger(name), context)
