"""
Structured logging setup for the aggregation services.

Provides consistent logging configuration with structured
output to stdout and, optionally, a daily rotated log file.
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional
import structlog
from structlog.stdlib import LoggerFactory


LOG_FILE_BACKUP_COUNT = 7

# Client libraries that log every request at DEBUG
NOISY_LOGGERS = [
    "aiohttp.access",
    "asyncio",
    "urllib3",
]


def setup_logging(
    service_name: str,
    log_level: str = "info",
    format_type: str = "json",
    log_file: Optional[str] = None,
) -> None:
    """
    Setup structured logging for the service.

    Args:
        service_name: Name of the service
        log_level: Logging level (debug, info, warning, error)
        format_type: Output format (json, console)
        log_file: Optional path of a log file, rotated daily
    """
    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=path,
            when="midnight",
            interval=1,
            backupCount=LOG_FILE_BACKUP_COUNT,
            encoding="utf-8",
            utc=True,
        )
        handlers.append(file_handler)

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=handlers,
        force=True,
    )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(max(level, logging.WARNING))

    # Configure structlog
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if format_type == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Every event carries the service name
    structlog.contextvars.bind_contextvars(service=service_name)


def add_account(logger: structlog.stdlib.BoundLogger, account: str) -> structlog.stdlib.BoundLogger:
    """Add account ID to logger context."""
    return logger.bind(account=account)
