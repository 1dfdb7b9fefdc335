"""Centralized logging configuration with structlog.

Structured JSON logs for the long-running notifier service, colored console
output for local runs. Timestamps are written in the business timezone so log
times line up with the business-hours gate.
"""

import logging
import sys
from datetime import datetime
from typing import Any

import pytz
import structlog
from structlog.types import EventDict, Processor

APP_NAME = "issue_notifier"

_NOISY_LOGGERS = ("boto3", "botocore", "s3transfer", "urllib3", "slack_sdk")


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Tag every log entry with the application name.

    Args:
        logger: Logger instance
        method_name: Method name
        event_dict: Event dictionary

    Returns:
        Enhanced event dictionary
    """
    event_dict["app"] = APP_NAME
    return event_dict


def make_timestamper(tz_name: str) -> Processor:
    """Build a processor stamping ISO 8601 times in ``tz_name``.

    Raises:
        pytz.UnknownTimeZoneError: If ``tz_name`` is not a known zone
    """
    tz = pytz.timezone(tz_name)

    def add_timestamp(
        logger: logging.Logger, method_name: str, event_dict: EventDict
    ) -> EventDict:
        event_dict["timestamp"] = datetime.now(tz).isoformat()
        return event_dict

    return add_timestamp


def setup_logging(
    log_level: str = "INFO", json_logs: bool = False, tz_name: str = "Asia/Seoul"
) -> None:
    """Configure structured logging with structlog.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON (service). If False, console format (dev)
        tz_name: Timezone for log timestamps

    Example:
        >>> setup_logging(log_level="INFO", json_logs=True, tz_name="Asia/Seoul")
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        make_timestamper(tz_name),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
    ]

    if json_logs:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("event_delivered", event_id="evt-1", object_key="issues/1.json")
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


def bind_context(**kwargs: Any) -> None:
    """Attach key/values to every log entry emitted from this context.

    Example:
        >>> bind_context(cycle_id="3f2a9c1e")
        >>> logger.info("cycle_completed")  # includes cycle_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Drop keys previously attached with ``bind_context``."""
    structlog.contextvars.unbind_contextvars(*keys)
