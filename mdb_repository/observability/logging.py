"""
Logging helpers for MDB_REPOSITORY.

Records emitted through :func:`get_logger` carry the caller's correlation ID
and the fields bound by :func:`bind_repository_context`. Repositories bind
the collection name and operation for the duration of each call, so a
handler can route or filter on ``record.collection_name``.
"""

import contextvars
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)

_bound_fields: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "repository_log_fields", default=None
)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """
    Tag subsequent log records in this context with a correlation ID.

    Args:
        correlation_id: ID to use; a random UUID is generated when omitted

    Returns:
        The correlation ID now in effect
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    _correlation_id.set(None)


@contextmanager
def bind_repository_context(**fields: Any) -> Iterator[dict[str, Any]]:
    """
    Attach ``fields`` to every contextual log record inside the block.

    Nested bindings merge over the outer ones; the outer binding is restored
    on exit, including when the block raises.
    """
    merged = {**(_bound_fields.get() or {}), **fields}
    token = _bound_fields.set(merged)
    try:
        yield merged
    finally:
        _bound_fields.reset(token)


def get_logging_context() -> dict[str, Any]:
    """Fields currently bound to log records: correlation ID plus repository context."""
    context = dict(_bound_fields.get() or {})
    correlation_id = get_correlation_id()
    if correlation_id:
        context["correlation_id"] = correlation_id
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Merges the bound logging context into ``extra``; explicit ``extra`` wins."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**get_logging_context(), **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    return ContextualLoggerAdapter(logging.getLogger(name), {})


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    level: int = logging.INFO,
    success: bool = True,
    duration_ms: float | None = None,
    **fields: Any,
) -> None:
    """
    Emit one structured record describing a finished operation.

    The record carries ``operation``, ``success``, the rounded
    ``duration_ms`` when given, any extra ``fields`` and the bound context.
    """
    extra = {**get_logging_context(), "operation": operation, "success": success, **fields}
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)

    message = f"Operation: {operation}" if success else f"Operation failed: {operation}"
    if duration_ms is not None:
        message += f" (duration: {duration_ms:.2f}ms)"

    logger.log(level, message, extra=extra)
