"""Observability: structured logging and correlation ids."""

from governance_ledger.infrastructure.observability.correlation import (
    correlation_id_processor,
    generate_correlation_id,
    get_correlation_id,
    operation_context,
    set_correlation_id,
)
from governance_ledger.infrastructure.observability.logging import (
    configure_structlog,
    stringify_large_ints,
)

__all__ = [
    "configure_structlog",
    "correlation_id_processor",
    "generate_correlation_id",
    "get_correlation_id",
    "operation_context",
    "set_correlation_id",
    "stringify_large_ints",
]
