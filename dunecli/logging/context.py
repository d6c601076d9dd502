"""Context binding utilities for structured logging.

Binds ``query_id`` and ``execution_id`` to log records so that every line
emitted while serving one command can be correlated. Values are kept in
contextvars, which survive ``await`` boundaries inside ``asyncio.run``.
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger

current_query_id: ContextVar[int | None] = ContextVar("query_id", default=None)
current_execution_id: ContextVar[str | None] = ContextVar("execution_id", default=None)


def get_dune_logger(
    *,
    query_id: int | None = None,
    execution_id: str | None = None,
    **extra: str,
) -> Logger:
    """Get a logger with Dune execution context bound.

    Values not passed explicitly are taken from the current context, so a
    logger created deep inside the fetcher still carries the query id set
    by the executor.

    Args:
        query_id: Dune query ID
        execution_id: Dune execution ID
        **extra: Additional context key-value pairs

    Returns:
        Logger instance with context bound

    Example:
        >>> log = get_dune_logger(query_id=3998990)
        >>> log.info("Submitting execution")
    """
    if query_id is not None:
        current_query_id.set(query_id)
    if execution_id is not None:
        current_execution_id.set(execution_id)

    ctx: dict[str, object] = {}
    if (qid := current_query_id.get()) is not None:
        ctx["query_id"] = qid
    if (eid := current_execution_id.get()) is not None:
        ctx["execution_id"] = eid
    ctx.update(extra)

    return logger.bind(**ctx)


def get_current_context() -> dict[str, object]:
    """Return the currently bound Dune context.

    Returns:
        Dict with the non-empty context values
    """
    ctx: dict[str, object] = {}
    if (qid := current_query_id.get()) is not None:
        ctx["query_id"] = qid
    if (eid := current_execution_id.get()) is not None:
        ctx["execution_id"] = eid
    return ctx


def clear_context() -> None:
    """Reset all context variables (테스트용)."""
    current_query_id.set(None)
    current_execution_id.set(None)
