"""Logging configuration for the RTO engine.

Standard library handlers carry the output; structlog adds structured
key/value context on top of them. Operation services bind their identifiers
(``operation``, ``rto_event_id``, ``shipment_id``...) with ``rto_log_context``
so every line logged inside an operation carries them.

Environment:
    PROTEAN_ENV / ENVIRONMENT   production and staging render JSON
    LOG_LEVEL                   overrides the per-environment level
    RTO_LOG_DIR                 directory of the rotating log files (default ``logs``)
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

_LEVELS = {
    "production": "INFO",
    "staging": "INFO",
    "development": "DEBUG",
    "test": "WARNING",
}

_JSON_ENVIRONMENTS = {"production", "staging"}

_MAX_LOG_BYTES = 10 * 1024 * 1024


def current_environment() -> str:
    return (os.getenv("PROTEAN_ENV") or os.getenv("ENVIRONMENT") or "development").lower()


def get_log_level() -> str:
    """Get log level based on environment."""
    return os.getenv("LOG_LEVEL", _LEVELS.get(current_environment(), "INFO")).upper()


def _rotating_handler(path: Path, level: int | str) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        filename=path,
        maxBytes=_MAX_LOG_BYTES,
        backupCount=5,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_stdlib_logging(log_dir: str | Path) -> None:
    """Route everything through stdout plus ``rto.log`` and an errors-only ``rto_error.log``."""
    log_level = get_log_level()

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    root_logger.addHandler(console_handler)
    root_logger.addHandler(_rotating_handler(log_dir / "rto.log", log_level))
    root_logger.addHandler(_rotating_handler(log_dir / "rto_error.log", logging.ERROR))

    logging.getLogger("protean").setLevel(logging.WARNING)


def drop_unset_fields(logger: Any, method_name: str, event_dict: dict) -> dict:
    """Remove ``None`` values, e.g. an ``ndr_event_id`` bound for a manual trigger."""
    return {key: value for key, value in event_dict.items() if value is not None}


def setup_structlog() -> None:
    """Configure structlog for structured logging."""
    processors = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        drop_unset_fields,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
    ]

    if current_environment() in _JSON_ENVIRONMENTS:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.RichTracebackFormatter(
                    show_locals=False,
                    max_frames=2,
                ),
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(log_dir: str | Path | None = None) -> None:
    """Configure all logging for the engine."""
    setup_stdlib_logging(log_dir or os.getenv("RTO_LOG_DIR", "logs"))
    setup_structlog()


def rto_log_context(**kwargs: Any):
    """Bind operation-scoped fields to log lines inside the block.

    Fields bound by the caller are restored on exit.
    """
    return structlog.contextvars.bound_contextvars(**kwargs)
