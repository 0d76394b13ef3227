"""
Structured logging for the scoreboard services.

structlog renders to the console in dev and to JSON lines elsewhere; stdlib
loggers (uvicorn, sqlalchemy, pywebpush) go through the same formatter.
Push endpoints are capability URLs, so they are shortened before rendering.
"""
from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator

import structlog

from shared.config import Environment, Settings, get_settings

_NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "asyncio", "urllib3", "pywebpush")
_ENDPOINT_KEEP_CHARS = 48


def shorten_endpoint(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Processor: keep only the push service prefix of an `endpoint` field."""
    endpoint = event_dict.get("endpoint")
    if isinstance(endpoint, str) and len(endpoint) > _ENDPOINT_KEEP_CHARS:
        event_dict["endpoint"] = endpoint[:_ENDPOINT_KEEP_CHARS] + "…"
    return event_dict


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        shorten_endpoint,
    ]


def _renderer(settings: Settings) -> structlog.types.Processor:
    if settings.environment == Environment.DEV:
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def setup_logging(service_name: str, extra_context: dict[str, Any] | None = None) -> None:
    """
    Configure structured logging for a process.

    Args:
        service_name: The service identifier (api, watcher, script name).
        extra_context: Additional static context fields bound to every log entry.
    """
    settings = get_settings()
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer(settings)],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        service=service_name,
        instance_id=settings.instance_id,
        **(extra_context or {}),
    )


@contextmanager
def match_context(match_id: str, **fields: Any) -> Iterator[None]:
    """Bind match_id (and any extra fields) to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(match_id=match_id, **fields):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named structured logger."""
    return structlog.get_logger(name)
