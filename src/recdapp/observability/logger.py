"""Structured logging with operation_id support.

Uses structlog for rendering (JSON or console).  Modules keep logging
through ``logging.getLogger(__name__)``; their records pass through the
same structlog processor chain, so every entry carries the operation_id
of the registry operation that emitted it.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

import structlog

# Context var for operation_id propagation
_operation_id: ContextVar[str] = ContextVar("operation_id", default="")


def get_operation_id() -> str:
    """Get current operation ID from context ("" outside an operation)."""
    return _operation_id.get()


def set_operation_id(operation_id: str) -> None:
    """Set operation ID in context."""
    _operation_id.set(operation_id)


def new_operation_id() -> str:
    """Generate and set a new operation ID."""
    oid = uuid.uuid4().hex[:12]
    _operation_id.set(oid)
    return oid


def _add_operation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor: add operation_id when one is active."""
    oid = get_operation_id()
    if oid:
        event_dict.setdefault("operation_id", oid)
    return event_dict


def setup_logging(
    level: str = "INFO",
    format: str = "json",
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format: "json" for production, "console" for development.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _add_operation_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

