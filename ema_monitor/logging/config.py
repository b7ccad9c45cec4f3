"""
Centralized logging configuration for the EMA monitor.

This module provides standardized logging configuration using structlog
for all components. Feed, backfill and engine modules log through loggers
obtained here so that connection events, dropped messages and upstream
failures end up in one structured event channel.
"""
import logging
import sys
from typing import Any, Optional

import orjson
import structlog
from structlog.types import FilteringBoundLogger

PACKAGE_LOGGER = "ema_monitor"

# Stdlib loggers of the transport libraries; they log every frame and
# connection detail at DEBUG
LIBRARY_LOGGERS = ("websockets", "aiohttp", "asyncio")

# Per-subsystem stdlib logger names, children of PACKAGE_LOGGER
FEED_LOGGERS = ("ema_monitor.feeds.live", "ema_monitor.feeds.backfill")


def _orjson_dumps(event_dict: dict[str, Any], **kwargs: Any) -> str:
    return orjson.dumps(event_dict, default=str).decode()


def _add_service(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", "ema-monitor")
    return event_dict


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    feed_level: Optional[str] = None,
    library_level: str = "WARNING",
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the monitor and its transport libraries.

    Args:
        level: Level for the monitor's own loggers (DEBUG, INFO, WARNING, ERROR)
        format_json: If True, emit one orjson-encoded line per event
        include_timestamp: Include ISO timestamp in log output
        include_caller: Include caller information (filename, line number)
        feed_level: Separate level for the live feed and backfill loggers.
            DEBUG there shows every skipped stream frame and fetch size.
        library_level: Level for websockets, aiohttp and asyncio loggers
        extra_processors: Additional structlog processors to include
    """
    log_level = getattr(logging, level.upper())

    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"
    )
    logging.getLogger(PACKAGE_LOGGER).setLevel(log_level)

    for name in FEED_LOGGERS:
        feed_logger = logging.getLogger(name)
        if feed_level is not None:
            feed_logger.setLevel(getattr(logging, feed_level.upper()))
        else:
            feed_logger.setLevel(logging.NOTSET)

    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(getattr(logging, library_level.upper()))

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _add_service,
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
        processors.append(structlog.processors.JSONRenderer(serializer=_orjson_dumps))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = PACKAGE_LOGGER) -> FilteringBoundLogger:
    """
    Get a structlog logger under the monitor's logger hierarchy.

    Names outside the package are nested below it, so that the levels set
    by configure_logging apply to them as well.
    """
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return structlog.get_logger(name)


def get_feed_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for live ticker stream events.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger bound to the live feed subsystem
    """
    return get_logger(name).bind(subsystem="live_feed")


def get_backfill_logger(name: str) -> FilteringBoundLogger:
    """Get a logger bound to the historical backfill subsystem."""
    return get_logger(name).bind(subsystem="backfill")


def log_connection_state(
    logger: FilteringBoundLogger,
    symbol: str,
    from_state: str,
    to_state: str,
    reason: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a subscription state change with standardized format.

    Args:
        logger: Structlog logger instance
        symbol: Instrument whose connection changed state
        from_state: Previous connection state
        to_state: New connection state
        reason: What caused the change
        context: Additional context data
    """
    bound_logger = logger.bind(
        symbol=symbol,
        from_state=from_state,
        to_state=to_state,
        reason=reason,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    if to_state == "closed":
        bound_logger.warning("Connection state change")
    else:
        bound_logger.info("Connection state change")
