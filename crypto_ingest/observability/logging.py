"""
Structured logging for crawl workers and the CLI.

JSON logs in production, coloured console output in development. Crawl
workers wrap each source in ``bound_context(source_type=..., source=...)``
so every line emitted while that source is being crawled carries them.
Credential-bearing fields are masked before rendering.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from crypto_ingest.config.settings import get_settings

# Event keys whose values are never written out
SECRET_KEYS = frozenset({
    "api_key",
    "access_token",
    "authorization",
    "client_secret",
    "password",
    "token",
})

_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "asyncpg")


def redact_secrets(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    """structlog processor masking credential values."""
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def _build_processors(json_output: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        redact_secrets,
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    return processors


def setup_logging(level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure structlog and route stdlib logging through stdout.

    Args:
        level: Log level override (default: LOG_LEVEL setting)
        json_output: Force JSON (True) or console (False) rendering
            (default: JSON in production only)
    """
    settings = get_settings()
    if json_output is None:
        json_output = settings.is_production

    structlog.configure(
        processors=_build_processors(json_output),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level or settings.log_level),
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


@contextmanager
def bound_context(**kwargs: Any) -> Iterator[None]:
    """Bind context variables for the duration of a block.

    Only the keys bound here are removed on exit, so an enclosing
    context (e.g. a cycle id) survives.
    """
    structlog.contextvars.bind_contextvars(**kwargs)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*kwargs)
