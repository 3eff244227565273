"""Structlog configuration with console and file output.

All application logs flow through the stdlib root logger so that library
output (uvicorn, cassandra-driver) and our own structured events share one
pipeline:
- console output, colored in development or JSON in production
- rotating JSON files for all events and for errors only
- request context (request_id, user_id, trace_id) injected into every event
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog
from structlog.types import EventDict, Processor

from learnhub.core.context import get_context


if TYPE_CHECKING:
    from learnhub.config.settings import Settings


# Keys whose string values are masked before rendering
SENSITIVE_KEYS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "authorization",
        "credentials",
    }
)

# Show first 2 and last 2 chars of values longer than this
_MIN_MASK_LENGTH = 4


def add_context_processor(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Inject the current request context into the event."""
    for key, value in get_context().items():
        event_dict.setdefault(key, value)
    return event_dict


def _mask(key: str, value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _mask(k, v) for k, v in value.items()}
    if isinstance(value, str) and any(s in key.lower() for s in SENSITIVE_KEYS):
        if len(value) > _MIN_MASK_LENGTH:
            return value[:2] + "*" * (len(value) - _MIN_MASK_LENGTH) + value[-2:]
        return "***"
    return value


def filter_sensitive_data(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Mask tokens, secrets and passwords in log events."""
    return {k: _mask(k, v) for k, v in event_dict.items()}


def stringify_uuids(
    logger: logging.Logger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Render UUID values as plain strings so every renderer agrees."""
    return {
        k: str(v) if isinstance(v, UUID) else v for k, v in event_dict.items()
    }


def setup_file_handler(
    log_dir: Path,
    log_file: str,
    max_bytes: int,
    backup_count: int,
    log_level: str,
) -> RotatingFileHandler:
    """Create a rotating file handler inside ``log_dir``."""
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(log_dir / log_file),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(getattr(logging, log_level.upper()))
    return handler


def build_shared_processors(settings: "Settings") -> list[Processor]:
    """Processors applied to both structlog and foreign (stdlib) records."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_context_processor,
        filter_sensitive_data,
        stringify_uuids,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.log_include_caller_info:
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                parameters=[
                    structlog.processors.CallsiteParameter.FILENAME,
                    structlog.processors.CallsiteParameter.LINENO,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                ]
            )
        )

    return processors


def configure_structlog(
    settings: "Settings",
    log_dir: Path | str | None = None,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        settings: Application settings.
        log_dir: Directory for log files. Defaults to ./logs. File output is
            disabled when running in the testing environment.
    """
    log_level = settings.log_level
    log_dir = Path(log_dir) if log_dir is not None else Path("logs")
    shared_processors = build_shared_processors(settings)

    if settings.log_format == "json":
        final_processor: Processor = structlog.processors.JSONRenderer()
    else:
        final_processor = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, log_level))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, log_level))
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=final_processor,
            foreign_pre_chain=shared_processors,
        )
    )
    root_logger.addHandler(console_handler)

    if not settings.is_testing:
        json_formatter = structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared_processors,
        )
        for log_file, level in (
            (f"{settings.app_name}.log", log_level),
            (f"{settings.app_name}.error.log", "ERROR"),
        ):
            handler = setup_file_handler(
                log_dir=log_dir,
                log_file=log_file,
                max_bytes=settings.log_file_max_bytes,
                backup_count=settings.log_file_backup_count,
                log_level=level,
            )
            handler.setFormatter(json_formatter)
            root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Silence noisy loggers
    for noisy in ("uvicorn.access", "uvicorn.error", "cassandra", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance."""
    return structlog.get_logger(name)
