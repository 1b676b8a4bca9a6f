"""Structured logging setup for ipsource.

structlog is layered over the stdlib logging module so that host
applications keep control of handlers, and pytest's caplog still sees
every event.

Usage:
    from ipsource.core.logging import configure_logging, get_logger

    configure_logging(level="DEBUG", fmt="console")
    log = get_logger(__name__)
    log.info("lookup_started", command="myip")
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Final

import structlog

_LEVELS: Final[dict[str, int]] = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_SHARED_PROCESSORS: Final[list[Any]] = [
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
]


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """Configure structlog and the root stdlib logger.

    Args:
        level: Logging level name (e.g., "INFO", "DEBUG").
        fmt: "json" for machine-readable lines, "console" for humans.
    """
    renderer: Any
    if fmt == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=False)
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(_normalize_level(level))


def get_logger(name: str) -> Any:
    """Return a structlog logger bound to the given module or component."""
    return structlog.get_logger(name)


def _normalize_level(level: str) -> int:
    normalized = level.strip().upper()
    return _LEVELS.get(normalized, logging.INFO)
