"""Operational monitoring (Prometheus)."""

from governance_ledger.infrastructure.monitoring.metrics import (
    LedgerMetrics,
    generate_metrics,
    get_ledger_metrics,
    reset_ledger_metrics,
)

__all__ = [
    "LedgerMetrics",
    "generate_metrics",
    "get_ledger_metrics",
    "reset_ledger_metrics",
]
