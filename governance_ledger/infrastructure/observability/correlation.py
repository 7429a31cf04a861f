"""Correlation ids for ledger operations.

Every operator command and every service call made on its behalf share
one correlation id. The id lives in a ContextVar so coroutines spawned
by the command inherit it, and ``correlation_id_processor`` stamps it on
each log line.

Usage:
    with operation_context("reconcile-user") as correlation_id:
        await services.reconciliation.recompute(subject_id)
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog
from uuid6 import uuid7

_correlation_id: ContextVar[str] = ContextVar("ledger_correlation_id", default="")


def generate_correlation_id() -> str:
    """Return a new time-ordered id, so log lines sort with ledger entries."""
    return str(uuid7())


def get_correlation_id() -> str:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id.set(correlation_id)


@contextmanager
def operation_context(
    operation: str, correlation_id: str | None = None
) -> Iterator[str]:
    """Scope a correlation id and an ``operation`` log field to a block.

    Both are restored on exit, so nested operations do not leak into the
    caller's context.
    """
    cid = correlation_id or generate_correlation_id()
    token = _correlation_id.set(cid)
    bound = structlog.contextvars.bind_contextvars(operation=operation)
    try:
        yield cid
    finally:
        structlog.contextvars.reset_contextvars(**bound)
        _correlation_id.reset(token)


def correlation_id_processor(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add the current correlation_id unless one was bound explicitly."""
    if "correlation_id" not in event_dict:
        correlation_id = get_correlation_id()
        if correlation_id:
            event_dict["correlation_id"] = correlation_id
    return event_dict
