"""In-memory stub for LedgerRepositoryProtocol."""

from __future__ import annotations

import asyncio
import threading
from datetime import datetime
from uuid import UUID

from governance_ledger.application.ports.ledger_repository import (
    LedgerQuery,
    LedgerTotals,
)
from governance_ledger.domain.errors import (
    EntryAlreadyFinalizedError,
    LedgerEntryNotFoundError,
)
from governance_ledger.domain.models import EntryStatus, LedgerEntry, LedgerKind


class LedgerRepositoryStub:
    """In-memory ledger keyed by entry id.

    Finalization is guarded by the stored status being PENDING, matching
    ``UPDATE ... WHERE id = :id AND status = 'PENDING'`` in the SQL adapter.
    """

    def __init__(self) -> None:
        """Initialize empty stub."""
        self._entries: dict[UUID, LedgerEntry] = {}
        self._lock = threading.Lock()

    async def insert_pending(self, entry: LedgerEntry) -> None:
        await asyncio.sleep(0)
        if not entry.is_pending:
            raise ValueError(f"Only PENDING entries can be inserted, got {entry.status.value}")
        with self._lock:
            if entry.entry_id in self._entries:
                raise ValueError(f"Ledger entry {entry.entry_id} already exists")
            self._entries[entry.entry_id] = entry

    async def finalize(self, entry: LedgerEntry) -> None:
        await asyncio.sleep(0)
        with self._lock:
            stored = self._entries.get(entry.entry_id)
            if stored is None:
                raise LedgerEntryNotFoundError(entry.entry_id)
            if not stored.is_pending:
                raise EntryAlreadyFinalizedError(entry.entry_id, stored.status.value)
            self._entries[entry.entry_id] = entry

    async def get(self, entry_id: UUID) -> LedgerEntry | None:
        await asyncio.sleep(0)
        with self._lock:
            return self._entries.get(entry_id)

    async def query(self, query: LedgerQuery) -> list[LedgerEntry]:
        await asyncio.sleep(0)
        with self._lock:
            matches = [
                e
                for e in self._entries.values()
                if e.subject_id == query.subject_id
                and (query.status is None or e.status is query.status)
                and (not query.kinds or e.kind in query.kinds)
                and (query.since is None or e.created_at >= query.since)
                and (query.until is None or e.created_at < query.until)
            ]
        matches.sort(key=lambda e: (e.created_at, e.entry_id), reverse=True)
        end = None if query.limit is None else query.offset + query.limit
        return matches[query.offset : end]

    async def list_pending(self, older_than: datetime | None = None) -> list[LedgerEntry]:
        await asyncio.sleep(0)
        with self._lock:
            pending = [
                e
                for e in self._entries.values()
                if e.is_pending and (older_than is None or e.created_at < older_than)
            ]
        return sorted(pending, key=lambda e: (e.created_at, e.entry_id))

    async def confirmed_totals(self, subject_id: str) -> LedgerTotals:
        await asyncio.sleep(0)
        amounts: dict[LedgerKind, int] = {}
        credited: dict[LedgerKind, int] = {}
        with self._lock:
            for e in self._entries.values():
                if e.subject_id != subject_id or e.status is not EntryStatus.CONFIRMED:
                    continue
                amounts[e.kind] = amounts.get(e.kind, 0) + e.amount
                if e.credited_amount is not None:
                    credited[e.kind] = credited.get(e.kind, 0) + e.credited_amount
        return LedgerTotals(subject_id=subject_id, amounts=amounts, credited=credited)

    async def count_by_status(self, subject_id: str) -> dict[EntryStatus, int]:
        await asyncio.sleep(0)
        counts = {status: 0 for status in EntryStatus}
        with self._lock:
            for e in self._entries.values():
                if e.subject_id == subject_id:
                    counts[e.status] += 1
        return counts

    async def list_point_subjects(self) -> list[str]:
        await asyncio.sleep(0)
        with self._lock:
            return sorted(
                {e.subject_id for e in self._entries.values() if e.kind.is_point_kind}
            )

    # Test helpers

    def add_entry(self, entry: LedgerEntry) -> None:
        """Store an entry in any status directly."""
        with self._lock:
            self._entries[entry.entry_id] = entry

    @property
    def entries(self) -> list[LedgerEntry]:
        with self._lock:
            return list(self._entries.values())

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()
