"""Logging setup for feedsync.

Every fetch runs inside its own context (see :func:`fetch_log_context`), so
the adapter and retry events emitted while a page is in flight carry the
page number and the operation that requested it.
"""

import logging
import sys
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from typing import Any, Iterator

import structlog

from feedsync.models.config import LoggingConfig

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ],
        ),
    ]


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )


def configure_logging(config: LoggingConfig | None = None) -> None:
    """
    Route structlog and stdlib logging through one set of handlers.

    Stdout uses JSON or a console layout depending on ``json_logs``; the
    optional log file always receives JSON lines.

    Args:
        config: Logging section of the application config (defaults if None)

    Example:
        >>> configure_logging(LoggingConfig(log_level="DEBUG", json_logs=False))
        >>> log = structlog.stdlib.get_logger()
        >>> log.info("fetch_started", page_number=1)
    """
    config = config or LoggingConfig()
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    if config.json_logs:
        console_renderer: Any = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(
            colors=sys.stdout.isatty(),
            exception_formatter=structlog.dev.plain_traceback,
        )
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setFormatter(_formatter(console_renderer))
    handlers: list[logging.Handler] = [stdout_handler]

    if config.log_file:
        file_handler = RotatingFileHandler(
            config.log_file,
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
        )
        file_handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
        handlers.append(file_handler)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setLevel(level)
        root.addHandler(handler)
    root.setLevel(level)

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def fetch_log_context(page_number: int, operation: str) -> Iterator[None]:
    """Bind the page being fetched to every log event emitted in this context."""
    with structlog.contextvars.bound_contextvars(page_number=page_number, operation=operation):
        yield
