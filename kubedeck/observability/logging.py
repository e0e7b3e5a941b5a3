"""Structured logging configuration using structlog.

kubedeck's own modules log through structlog as JSON lines on stderr.
uvicorn runs with ``log_config=None`` and kubernetes-asyncio and aiohttp
log through the standard library, so their records are sent to the same
stream by a single root handler.
"""

from __future__ import annotations

import logging
import sys

import structlog

_STDLIB_FORMAT = '{"ts": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "event": "%(message)s"}'

# Library loggers that are too chatty at debug/info for a long-running service.
_LIBRARY_FLOORS = {
    "uvicorn.access": logging.WARNING,
    "aiohttp.access": logging.WARNING,
    "kubernetes_asyncio.client.rest": logging.INFO,
}


class _KubeDeckStdlibHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Root handler installed once by setup_logging."""


def _configure_stdlib(log_level: int) -> None:
    root = logging.getLogger()
    if not any(isinstance(h, _KubeDeckStdlibHandler) for h in root.handlers):
        handler = _KubeDeckStdlibHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_STDLIB_FORMAT))
        root.addHandler(handler)
    root.setLevel(log_level)
    for name, floor in _LIBRARY_FLOORS.items():
        logging.getLogger(name).setLevel(max(log_level, floor))


def setup_logging(level: str = "info") -> None:
    """Configure structlog for JSON output to stderr and route stdlib loggers there too."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    _configure_stdlib(log_level)


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
