"""Structured logging configuration.

structlog renders through the stdlib ``logging`` module so uvicorn, SQLAlchemy
and application records share handlers, level and output file.
"""

import sys
import structlog
import logging
from pathlib import Path
from typing import List, Optional
from core.config import Settings

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = (
    "uvicorn.access",
    "aiosqlite",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "watchfiles",
)


def _handlers(settings: Settings, level: int) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    for handler in handlers:
        handler.setLevel(level)
    return handlers


def _renderer(log_format: str):
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=False,
        pad_event=35,
        exception_formatter=structlog.dev.plain_traceback
    )


def configure_logging(settings: Settings) -> None:
    """Configure stdlib handlers and structlog from settings.

    ``LOG_FORMAT=json`` emits one JSON object per line with ISO timestamps and
    logger names; anything else gives a compact console layout.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        handlers=_handlers(settings, level),
        format="%(message)s",
        force=True
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    json_output = settings.log_format == "json"
    processors = [
        structlog.processors.TimeStamper(fmt="iso" if json_output else "%H:%M:%S"),
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _renderer(settings.log_format),
    ]
    if json_output:
        processors.insert(0, structlog.stdlib.add_logger_name)

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_upstream_call(logger: structlog.stdlib.BoundLogger, method: str,
                      path: str, status: Optional[int], success: bool, **kwargs) -> None:
    """Log calls to the simulation API with a standard shape."""
    logger.info(
        "Upstream call completed",
        method=method,
        path=path,
        status=status,
        success=success,
        **kwargs
    )


def log_cache_operation(logger: structlog.stdlib.BoundLogger, operation: str,
                        key: str, hit: Optional[bool] = None, **kwargs) -> None:
    """Log cache operations."""
    log_data = {
        "operation": operation,
        "cache_key": key,
        **kwargs
    }

    if hit is not None:
        log_data["cache_hit"] = hit

    logger.debug("Cache operation", **log_data)
