"""
Centralized logging configuration for the event overlay core.

This module provides standardized logging configuration using structlog
for all components. The cache, the plugin manager and the plugins all log
through loggers obtained here so that records share one format.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import FilteringBoundLogger


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON format; otherwise human-readable
        include_timestamp: Include timestamp in log output
        include_caller: Include caller information (filename, line number)
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"  # structlog will handle formatting
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                       structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_cache_logger(name: str) -> FilteringBoundLogger:
    """Logger bound to the event cache subsystem."""
    return get_logger(name).bind(subsystem="event_cache")


def get_plugin_logger(name: str) -> FilteringBoundLogger:
    """Logger bound to the plugin subsystem."""
    return get_logger(name).bind(subsystem="plugins")


def log_cache_sync(
    logger: FilteringBoundLogger,
    target_start: int,
    target_end: int,
    missing_ranges: int,
    returned_events: int,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log the outcome of one cache synchronization with standardized format.

    Args:
        logger: Structlog logger instance
        target_start: Start of the range that had to be covered
        target_end: End of the range that had to be covered
        missing_ranges: Number of ranges that were fetched
        returned_events: Number of events handed back to the caller
        context: Additional context data
    """
    bound_logger = logger.bind(
        target_start=target_start,
        target_end=target_end,
        missing_ranges=missing_ranges,
        returned_events=returned_events,
        record_type="cache_sync"
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("Event cache synchronized")


def log_plugin_lifecycle(
    logger: FilteringBoundLogger,
    plugin_id: str,
    lifecycle_event: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a plugin lifecycle step with standardized format.

    Args:
        logger: Structlog logger instance
        plugin_id: ID of the plugin
        lifecycle_event: init, mount, unmount, cleanup or error
        context: Additional context data
    """
    bound_logger = logger.bind(
        plugin_id=plugin_id,
        lifecycle_event=lifecycle_event,
        record_type="plugin_lifecycle"
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if lifecycle_event == "error":
        bound_logger.error("Plugin lifecycle error")
    else:
        bound_logger.info("Plugin lifecycle")
