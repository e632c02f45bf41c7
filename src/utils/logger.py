"""
Module: logger.py
Description: Structured logging configuration for the SQS nodes.

Configures structlog for JSON output so trigger and command logs can be
shipped to CloudWatch (or any line-oriented collector) unchanged.
Provides consistent logging across all modules with proper context
and structured data.

Key Components:
- JSON output for CloudWatch compatibility
- Timestamp and log level processors
- configure_logging() to apply the configured log level
- get_logger() helper function

Dependencies: structlog, logging, datetime
Author: SQS Nodes Team
"""

import logging
from datetime import datetime, timezone

import structlog


def _add_timestamp(logger, method_name, event_dict):
    """
    Add ISO 8601 timestamp to log entries.

    Args:
        logger: Logger instance
        method_name: Log method name (info, error, etc.)
        event_dict: Current log event dictionary

    Returns:
        Updated event dictionary with timestamp
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    return event_dict


def _add_log_level(logger, method_name, event_dict):
    """Add log level to event dictionary."""
    event_dict["level"] = method_name.upper()
    return event_dict


def configure_logging(level: str = "INFO") -> None:
    """
    Configure structlog for JSON output at the given level.

    Safe to call more than once; the latest call wins for loggers
    created afterwards.

    Args:
        level: Standard logging level name (DEBUG, INFO, WARNING, ...)
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    structlog.configure(
        processors=[
            # Add timestamp and log level
            _add_timestamp,
            _add_log_level,
            # Add exception information
            structlog.processors.format_exc_info,
            # Render as JSON for CloudWatch compatibility
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.WriteLoggerFactory(),
        # Drop events below the configured level before processing
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=False,
    )


configure_logging()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Message received", message_id="m1", queue_url="https://...")
        {"message_id": "m1", "queue_url": "https://...", "event": "Message received", "timestamp": "...", "level": "INFO"}
    """
    return structlog.get_logger(name)
