"""PostgreSQL ledger entry repository."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from governance_ledger.application.ports.ledger_repository import (
    LedgerQuery,
    LedgerTotals,
)
from governance_ledger.domain.errors import (
    EntryAlreadyFinalizedError,
    LedgerEntryNotFoundError,
)
from governance_ledger.domain.models import (
    EntryStatus,
    LedgerEntry,
    LedgerKind,
    PointSource,
)

_COLUMNS = """
    entry_id, subject_id, kind, amount, source, support, ratio, credited_amount,
    status, description, created_at, confirmed_at, finalized_at, failure_reason
"""


def _row_to_entry(row: Any) -> LedgerEntry:
    return LedgerEntry(
        entry_id=row.entry_id,
        subject_id=row.subject_id,
        kind=LedgerKind(row.kind),
        amount=int(row.amount),
        status=EntryStatus(row.status),
        source=PointSource.from_code(row.source) if row.source is not None else None,
        support=row.support,
        ratio=row.ratio,
        credited_amount=int(row.credited_amount) if row.credited_amount is not None else None,
        description=row.description,
        created_at=row.created_at,
        confirmed_at=row.confirmed_at,
        finalized_at=row.finalized_at,
        failure_reason=row.failure_reason,
    )


class PostgresLedgerRepository:
    """LedgerRepositoryProtocol backed by ``ledger_entries``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert_pending(self, entry: LedgerEntry) -> None:
        if not entry.is_pending:
            raise ValueError(f"Only PENDING entries can be inserted, got {entry.status.value}")
        async with self._session_factory() as session, session.begin():
            await session.execute(
                text("""
                    INSERT INTO ledger_entries (
                        entry_id, subject_id, kind, amount, source, support, ratio,
                        credited_amount, status, description, created_at
                    ) VALUES (
                        :entry_id, :subject_id, :kind, :amount, :source, :support, :ratio,
                        :credited_amount, 'PENDING', :description, :created_at
                    )
                """),
                {
                    "entry_id": entry.entry_id,
                    "subject_id": entry.subject_id,
                    "kind": entry.kind.value,
                    "amount": Decimal(entry.amount),
                    "source": entry.source.value if entry.source is not None else None,
                    "support": entry.support,
                    "ratio": entry.ratio,
                    "credited_amount": (
                        Decimal(entry.credited_amount)
                        if entry.credited_amount is not None
                        else None
                    ),
                    "description": entry.description,
                    "created_at": entry.created_at,
                },
            )

    async def finalize(self, entry: LedgerEntry) -> None:
        if entry.is_pending:
            raise ValueError("finalize requires a CONFIRMED or FAILED entry")
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                text("""
                    UPDATE ledger_entries
                    SET status = :status,
                        confirmed_at = :confirmed_at,
                        finalized_at = :finalized_at,
                        failure_reason = :failure_reason
                    WHERE entry_id = :entry_id AND status = 'PENDING'
                """),
                {
                    "entry_id": entry.entry_id,
                    "status": entry.status.value,
                    "confirmed_at": entry.confirmed_at,
                    "finalized_at": entry.finalized_at,
                    "failure_reason": entry.failure_reason,
                },
            )
            if result.rowcount == 1:
                return
            current = await session.execute(
                text("SELECT status FROM ledger_entries WHERE entry_id = :entry_id"),
                {"entry_id": entry.entry_id},
            )
            status = current.scalar()
        if status is None:
            raise LedgerEntryNotFoundError(entry.entry_id)
        raise EntryAlreadyFinalizedError(entry.entry_id, status)

    async def get(self, entry_id: UUID) -> LedgerEntry | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text(f"SELECT {_COLUMNS} FROM ledger_entries WHERE entry_id = :entry_id"),
                {"entry_id": entry_id},
            )
            row = result.fetchone()
        return _row_to_entry(row) if row is not None else None

    async def query(self, query: LedgerQuery) -> list[LedgerEntry]:
        conditions = ["subject_id = :subject_id"]
        params: dict[str, Any] = {"subject_id": query.subject_id, "offset": query.offset}
        if query.status is not None:
            conditions.append("status = :status")
            params["status"] = query.status.value
        if query.kinds:
            placeholders = []
            for i, kind in enumerate(query.kinds):
                params[f"kind_{i}"] = kind.value
                placeholders.append(f":kind_{i}")
            conditions.append(f"kind IN ({', '.join(placeholders)})")
        if query.since is not None:
            conditions.append("created_at >= :since")
            params["since"] = query.since
        if query.until is not None:
            conditions.append("created_at < :until")
            params["until"] = query.until
        limit_clause = ""
        if query.limit is not None:
            limit_clause = "LIMIT :limit"
            params["limit"] = query.limit

        sql = f"""
            SELECT {_COLUMNS}
            FROM ledger_entries
            WHERE {' AND '.join(conditions)}
            ORDER BY created_at DESC, entry_id DESC
            {limit_clause} OFFSET :offset
        """
        async with self._session_factory() as session:
            result = await session.execute(text(sql), params)
            return [_row_to_entry(row) for row in result.fetchall()]

    async def list_pending(self, older_than: datetime | None = None) -> list[LedgerEntry]:
        sql = f"SELECT {_COLUMNS} FROM ledger_entries WHERE status = 'PENDING'"
        params: dict[str, Any] = {}
        if older_than is not None:
            sql += " AND created_at < :older_than"
            params["older_than"] = older_than
        sql += " ORDER BY created_at, entry_id"
        async with self._session_factory() as session:
            result = await session.execute(text(sql), params)
            return [_row_to_entry(row) for row in result.fetchall()]

    async def confirmed_totals(self, subject_id: str) -> LedgerTotals:
        async with self._session_factory() as session:
            result = await session.execute(
                text("""
                    SELECT kind,
                           COALESCE(SUM(amount), 0) AS amount_total,
                           COALESCE(SUM(credited_amount), 0) AS credited_total
                    FROM ledger_entries
                    WHERE subject_id = :subject_id AND status = 'CONFIRMED'
                    GROUP BY kind
                """),
                {"subject_id": subject_id},
            )
            rows = result.fetchall()
        amounts: dict[LedgerKind, int] = {}
        credited: dict[LedgerKind, int] = {}
        for row in rows:
            kind = LedgerKind(row.kind)
            amounts[kind] = int(row.amount_total)
            if kind.uses_ratio:
                credited[kind] = int(row.credited_total)
        return LedgerTotals(subject_id=subject_id, amounts=amounts, credited=credited)

    async def count_by_status(self, subject_id: str) -> dict[EntryStatus, int]:
        async with self._session_factory() as session:
            result = await session.execute(
                text("""
                    SELECT status, COUNT(*) AS n
                    FROM ledger_entries
                    WHERE subject_id = :subject_id
                    GROUP BY status
                """),
                {"subject_id": subject_id},
            )
            rows = result.fetchall()
        counts = {status: 0 for status in EntryStatus}
        for row in rows:
            counts[EntryStatus(row.status)] = int(row.n)
        return counts

    async def list_point_subjects(self) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                text("""
                    SELECT DISTINCT subject_id
                    FROM ledger_entries
                    WHERE kind <> 'VOTE_CAST'
                    ORDER BY subject_id
                """)
            )
            return [row[0] for row in result.fetchall()]
