"""Structured logging for fluidmap.

Logs are JSON lines on stderr; stdout belongs to rendered graphs.  Every
line carries ``service`` and, inside ``mapping_context``, the Dataset being
mapped, so concurrent REST mappings can be told apart.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO

import structlog

SERVICE = "fluidmap"


def _add_service(_logger: object, _method: str, event_dict: structlog.types.EventDict) -> structlog.types.EventDict:
    event_dict.setdefault("service", SERVICE)
    return event_dict


def setup_logging(level: str = "warning", stream: IO[str] | None = None) -> None:
    """Configure structlog for JSON output.

    Args:
        level:  Minimum level name, case-insensitive; unknown names mean warning.
        stream: Destination; ``sys.stderr`` as it is at call time when omitted.
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream or sys.stderr),
        # Module-level loggers must follow a later reconfiguration.
        cache_logger_on_first_use=False,
    )


@contextmanager
def mapping_context(name: str, namespace: str) -> Iterator[None]:
    """Tag every log line emitted inside the block with the Dataset."""
    with structlog.contextvars.bound_contextvars(dataset=f"{namespace}/{name}"):
        yield


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
