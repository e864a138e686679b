"""
Logging Setup
=============

Routes structlog events and stdlib records (uvicorn, SQLAlchemy, httpx)
through one ProcessorFormatter, so the service writes a single stream of
either console lines or JSON lines. Request context (``request_id``,
method, path) is carried in contextvars.
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import Processor

# Chatty at INFO; only their warnings are interesting here
NOISY_LOGGERS = ("uvicorn.access", "httpx", "sqlalchemy.engine", "aiosqlite")


def _renderer(json_format: bool) -> Processor:
    if json_format:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def _pre_chain(json_format: bool) -> list[Processor]:
    chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if json_format:
        # Console output renders tracebacks itself
        chain.append(structlog.processors.format_exc_info)
    return chain


def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
    environment: str = "development",
) -> None:
    """
    Configure structlog and the root stdlib logger.

    Args:
        level: Log level name (default: INFO)
        json_format: Render JSON lines; defaults to True in production
        environment: Deployment environment name
    """
    if json_format is None:
        json_format = environment == "production"
    pre_chain = _pre_chain(json_format)

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(json_format),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, (level or "INFO").upper(), logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> Any:
    """Return a structlog logger, usually named after the module."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach fields to every event logged in the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Drop all fields bound with :func:`bind_context`."""
    structlog.contextvars.clear_contextvars()
