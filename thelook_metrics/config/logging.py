"""
Logging Configuration for thelook Metrics

structlog events and stdlib records (SQLAlchemy, polars) share one
stderr handler, so stdout stays free for result tables.
"""

import logging
import sys
from typing import List, Optional

import structlog
from structlog.processors import JSONRenderer, TimeStamper
from structlog.stdlib import add_log_level, ProcessorFormatter

from thelook_metrics.config.settings import get_settings

# Chatty third-party loggers, raised to WARNING unless running at DEBUG
QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def _shared_processors() -> List:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        add_log_level,
        TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def build_renderer(log_format: str):
    """JSON lines for "json", colored console output otherwise"""
    if log_format == "json":
        return JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """
    Route structlog and stdlib logging through one stderr handler.

    Args:
        log_level: Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)
        log_format: Override LOG_FORMAT (json or text)
    """
    monitoring = get_settings().monitoring
    level = (log_level or monitoring.log_level).upper()
    fmt = (log_format or monitoring.log_format).lower()
    numeric_level = getattr(logging, level, logging.INFO)

    shared_processors = _shared_processors()

    # Not cached: the CLI and tests may reconfigure within one process
    structlog.configure(
        processors=shared_processors + [ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(
        ProcessorFormatter(processor=build_renderer(fmt), foreign_pre_chain=shared_processors)
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    quiet_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
