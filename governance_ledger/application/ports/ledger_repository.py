"""Ledger store port.

The ledger store is append-oriented: entries are inserted PENDING and
then finalized exactly once. Finalization is a single update keyed by the
entry id and guarded by ``status = PENDING`` so a second execution path
can never overwrite a terminal entry.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from governance_ledger.domain.models import EntryStatus, LedgerEntry, LedgerKind


@dataclass(frozen=True)
class LedgerTotals:
    """Sums of CONFIRMED entries for one subject, grouped by kind.

    Attributes:
        amounts: Sum of ``amount`` per kind.
        credited: Sum of ``credited_amount`` per kind (ratio kinds only).
    """

    subject_id: str
    amounts: dict[LedgerKind, int] = field(default_factory=dict)
    credited: dict[LedgerKind, int] = field(default_factory=dict)

    def amount(self, kind: LedgerKind) -> int:
        return self.amounts.get(kind, 0)

    def credit(self, kind: LedgerKind) -> int:
        return self.credited.get(kind, 0)


@dataclass(frozen=True)
class LedgerQuery:
    """Filter for subject history queries. Results are newest first."""

    subject_id: str
    status: EntryStatus | None = None
    kinds: tuple[LedgerKind, ...] = ()
    since: datetime | None = None
    until: datetime | None = None
    limit: int | None = None
    offset: int = 0


@runtime_checkable
class LedgerRepositoryProtocol(Protocol):
    """Protocol for ledger entry persistence."""

    @abstractmethod
    async def insert_pending(self, entry: LedgerEntry) -> None:
        """Durably record a PENDING entry.

        Raises:
            ValueError: If the entry is not PENDING.
        """
        ...

    @abstractmethod
    async def finalize(self, entry: LedgerEntry) -> None:
        """Persist the terminal status of a previously PENDING entry.

        Args:
            entry: The CONFIRMED or FAILED snapshot.

        Raises:
            LedgerEntryNotFoundError: Unknown entry id.
            EntryAlreadyFinalizedError: Stored entry is no longer PENDING.
        """
        ...

    @abstractmethod
    async def get(self, entry_id: UUID) -> LedgerEntry | None:
        """Fetch one entry by id."""
        ...

    @abstractmethod
    async def query(self, query: LedgerQuery) -> list[LedgerEntry]:
        """List a subject's entries matching the filter, newest first."""
        ...

    @abstractmethod
    async def list_pending(self, older_than: datetime | None = None) -> list[LedgerEntry]:
        """List PENDING entries across subjects, oldest first."""
        ...

    @abstractmethod
    async def confirmed_totals(self, subject_id: str) -> LedgerTotals:
        """Sum CONFIRMED entries for a subject by kind."""
        ...

    @abstractmethod
    async def count_by_status(self, subject_id: str) -> dict[EntryStatus, int]:
        """Count a subject's entries per status."""
        ...

    @abstractmethod
    async def list_point_subjects(self) -> list[str]:
        """List every subject that has at least one point entry."""
        ...
