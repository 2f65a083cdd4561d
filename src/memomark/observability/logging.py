"""Structured logging configuration using structlog.

Why this exists:
- Provides consistent, structured logging across the library
- Keeps log output off stdout so CLI tables and JSON stay clean
- Supports file output with rotation

How to use:
    from memomark.observability.logging import get_logger

    logger = get_logger(__name__)
    logger.info("document_created", document_id=12, title="Notes")
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from memomark.config.schema import LoggingConfig


class TimedRotatingFileHandler(logging.handlers.TimedRotatingFileHandler):
    """Timed rotating file handler with automatic cleanup."""

    def __init__(self, filename: str, max_days: int = 30, **kwargs):
        """Initialize handler with max days for cleanup.

        Args:
            filename: Log file path
            max_days: Maximum number of days to retain logs
            **kwargs: Additional arguments for TimedRotatingFileHandler
        """
        super().__init__(filename, when="midnight", interval=1, **kwargs)
        self.max_days = max_days

    def doRollover(self) -> None:
        """Rotate, then remove files older than max_days."""
        super().doRollover()
        self._cleanup_old_files()

    def _cleanup_old_files(self) -> None:
        base_dir = os.path.dirname(self.baseFilename)
        base_name = os.path.basename(self.baseFilename)
        cutoff_time = datetime.now(timezone.utc).timestamp() - (self.max_days * 86400)

        for filename in os.listdir(base_dir):
            if filename.startswith(base_name + "."):
                file_path = os.path.join(base_dir, filename)
                try:
                    if os.path.getmtime(file_path) < cutoff_time:
                        os.remove(file_path)
                except OSError as e:
                    sys.stderr.write(f"Failed to remove old log file {file_path}: {e}\n")


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add application context to log events."""
    event_dict["app"] = "memomark"
    return event_dict


def configure_logging(
    level: str = "WARNING",
    json_logs: bool = False,
    log_dir: Optional[Path] = None,
    max_days: int = 30,
    enable_file: bool = False,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output logs as JSON; otherwise use console format
        log_dir: Directory for log files (if None, file logging is disabled)
        max_days: Number of days to retain log files
        enable_file: Whether to enable file logging
    """
    numeric_level = getattr(logging, str(level).upper())

    # Standard library logging carries the rendered events; stderr keeps stdout for command output
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
    )
    # basicConfig is a no-op once handlers exist, so later calls set the level here
    logging.getLogger().setLevel(numeric_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_app_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    if enable_file and log_dir:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = log_dir / "memomark.log"

            root_logger = logging.getLogger()
            root_logger.setLevel(numeric_level)

            # Remove existing file handlers to avoid duplicates
            for handler in root_logger.handlers[:]:
                if isinstance(handler, logging.FileHandler):
                    root_logger.removeHandler(handler)

            file_handler = TimedRotatingFileHandler(
                str(log_file),
                max_days=max_days,
                encoding="utf-8",
            )
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(logging.Formatter("%(message)s"))
            root_logger.addHandler(file_handler)

            structlog.configure(
                processors=processors,
                wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
                context_class=dict,
                logger_factory=structlog.stdlib.LoggerFactory(),
                cache_logger_on_first_use=True,
            )
            return
        except OSError as e:
            logging.warning(f"Failed to enable file logging: {e}. Using console-only mode.")

    # Console-only mode (default)
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def configure_from_config(config: LoggingConfig, json_logs: bool = False) -> None:
    """Configure logging from a LoggingConfig object.

    Args:
        config: Logging configuration
        json_logs: Render log events as JSON
    """
    configure_logging(
        level=config.level.value,
        json_logs=json_logs,
        log_dir=config.log_dir if config.enable_file else None,
        max_days=config.max_days,
        enable_file=config.enable_file,
    )
