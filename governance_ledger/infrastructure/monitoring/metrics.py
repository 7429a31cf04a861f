"""Prometheus metrics for the ledger engine.

Operational counters only: ledger entry outcomes, votes, sequence
reservations, external submission failures and reconciliation drift.
Each collector owns a CollectorRegistry so tests can create isolated
instances.
"""

import os
import threading

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

_collector_lock = threading.Lock()


class LedgerMetrics:
    """Collects ledger engine Prometheus metrics.

    Attributes:
        ledger_entries_total: Finalized entries by kind and status.
        votes_cast_total: Stored votes by support.
        sequence_reservations_total: Ids handed out by reserve_next.
        sequence_confirmations_total: Confirm calls that advanced the counter.
        sequence_highest_confirmed_id: Current synchronizer counter.
        external_submission_failures_total: Exhausted submissions by operation.
        reconciliation_drift_total: Aggregates found out of line by type.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics.

        Args:
            registry: Optional custom registry for testing isolation.
        """
        self._registry = registry or CollectorRegistry()
        self._environment = os.environ.get("ENVIRONMENT", "development")
        self._service_name = os.environ.get("SERVICE_NAME", "governance-ledger")

        self.ledger_entries_total = Counter(
            name="ledger_entries_total",
            documentation="Finalized ledger entries",
            labelnames=["service", "environment", "kind", "status"],
            registry=self._registry,
        )
        self.votes_cast_total = Counter(
            name="votes_cast_total",
            documentation="Votes stored",
            labelnames=["service", "environment", "support"],
            registry=self._registry,
        )
        self.sequence_reservations_total = Counter(
            name="sequence_reservations_total",
            documentation="Proposal ids reserved",
            labelnames=["service", "environment"],
            registry=self._registry,
        )
        self.sequence_confirmations_total = Counter(
            name="sequence_confirmations_total",
            documentation="Proposal id confirmations that advanced the counter",
            labelnames=["service", "environment"],
            registry=self._registry,
        )
        self.sequence_highest_confirmed_id = Gauge(
            name="sequence_highest_confirmed_id",
            documentation="Highest proposal id confirmed locally and externally",
            labelnames=["service", "environment"],
            registry=self._registry,
        )
        self.external_submission_failures_total = Counter(
            name="external_submission_failures_total",
            documentation="External submissions that failed after all attempts",
            labelnames=["service", "environment", "operation"],
            registry=self._registry,
        )
        self.reconciliation_drift_total = Counter(
            name="reconciliation_drift_total",
            documentation="Aggregates whose stored value differed from the ledger",
            labelnames=["service", "environment", "aggregate"],
            registry=self._registry,
        )

    def _labels(self) -> dict[str, str]:
        return {"service": self._service_name, "environment": self._environment}

    def record_entry(self, kind: str, status: str) -> None:
        self.ledger_entries_total.labels(**self._labels(), kind=kind, status=status).inc()

    def record_vote(self, support: bool) -> None:
        self.votes_cast_total.labels(
            **self._labels(), support="for" if support else "against"
        ).inc()

    def record_reservation(self) -> None:
        self.sequence_reservations_total.labels(**self._labels()).inc()

    def record_confirmation(self, highest_id: int) -> None:
        self.sequence_confirmations_total.labels(**self._labels()).inc()
        self.set_highest_confirmed_id(highest_id)

    def set_highest_confirmed_id(self, highest_id: int) -> None:
        self.sequence_highest_confirmed_id.labels(**self._labels()).set(highest_id)

    def record_external_failure(self, operation: str) -> None:
        self.external_submission_failures_total.labels(
            **self._labels(), operation=operation
        ).inc()

    def record_drift(self, aggregate: str) -> None:
        self.reconciliation_drift_total.labels(
            **self._labels(), aggregate=aggregate
        ).inc()

    def get_registry(self) -> CollectorRegistry:
        """Get the underlying Prometheus registry."""
        return self._registry


_ledger_metrics: LedgerMetrics | None = None


def get_ledger_metrics() -> LedgerMetrics:
    """Get or create the process-wide LedgerMetrics instance."""
    global _ledger_metrics
    if _ledger_metrics is None:
        with _collector_lock:
            if _ledger_metrics is None:
                _ledger_metrics = LedgerMetrics()
    return _ledger_metrics


def generate_metrics() -> bytes:
    """Render the process-wide metrics in Prometheus exposition format."""
    return generate_latest(get_ledger_metrics().get_registry())


def reset_ledger_metrics() -> None:
    """Reset the singleton (for testing)."""
    global _ledger_metrics
    with _collector_lock:
        _ledger_metrics = None
