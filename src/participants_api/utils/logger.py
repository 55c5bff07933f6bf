"""
Module: logger.py
Description: Structured logging configuration for the Participants API.

Configures structlog for JSON output optimized for CloudWatch Logs.
Every module obtains its logger through get_logger() so that output
format and level filtering stay consistent across the service.

Key Components:
- JSON output for CloudWatch compatibility
- Timestamp and log level processors
- Level filtering driven by settings.log_level
- get_logger() helper function

Dependencies: structlog, logging, datetime
Author: Participants API Team
"""

import logging
from datetime import datetime, timezone

import structlog

from participants_api.config.settings import settings


def _add_timestamp(logger, method_name, event_dict):
    """
    Add an ISO 8601 UTC timestamp to log entries.

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
    """Add the upper-cased log level to the event dictionary."""
    event_dict["level"] = method_name.upper()
    return event_dict


structlog.configure(
    processors=[
        _add_timestamp,
        _add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    logger_factory=structlog.WriteLoggerFactory(),
    # Drop events below the configured level before any processor runs
    wrapper_class=structlog.make_filtering_bound_logger(
        getattr(logging, settings.log_level, logging.INFO)
    ),
    cache_logger_on_first_use=True,
)


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Participant created", participant_id="aB3xZ", event_id="E1")
        {"participant_id": "aB3xZ", "event_id": "E1", "event": "Participant created", "timestamp": "2024-01-15T10:30:00.000000Z", "level": "INFO"}
    """
    return structlog.get_logger(name)
