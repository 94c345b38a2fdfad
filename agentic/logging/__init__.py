"""Logging utilities for the agentic chat runtime.

Runtime modules log through ``logging.getLogger(__name__)``. This module
installs a structlog ``ProcessorFormatter`` on the root handler so those
records come out either as key/value console lines or as JSON documents.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, List, Optional

import structlog

_SHARED_PROCESSORS: List[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
]


def configure_logging(
    level: str = "INFO",
    fmt: str = "console",
    *,
    service_name: str = "agentic-chat",
    stream: Optional[Any] = None,
) -> None:
    """Route stdlib and structlog loggers through one structlog renderer."""

    renderer = structlog.processors.JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer(colors=False)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)


def bind_request_context(**values: Any) -> Dict[str, Any]:
    """Attach per-request fields (owner, session id) to every log line."""

    structlog.contextvars.bind_contextvars(**values)
    return structlog.contextvars.get_contextvars()


def clear_request_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


__all__ = [
    "bind_request_context",
    "clear_request_context",
    "configure_logging",
]
