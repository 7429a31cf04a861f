"""In-memory stub for BalanceRepositoryProtocol.

Emulates the conditional single-statement updates of the SQL adapter:
every check-and-mutate happens under one lock with no await inside it.
Each operation yields to the event loop first to mimic I/O, so
concurrent callers interleave the way they would against a database.
"""

from __future__ import annotations

import asyncio
import threading
from datetime import datetime, timezone

from governance_ledger.application.ports.balance_repository import BalanceField
from governance_ledger.domain.models import BalanceAggregate


class BalanceRepositoryStub:
    """In-memory balance rows keyed by subject id."""

    def __init__(self) -> None:
        """Initialize empty stub."""
        self._rows: dict[str, dict[BalanceField, int]] = {}
        self._updated_at: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def _touch(self, subject_id: str) -> None:
        self._updated_at[subject_id] = datetime.now(timezone.utc)

    async def ensure_exists(self, subject_id: str) -> None:
        await asyncio.sleep(0)
        with self._lock:
            if subject_id not in self._rows:
                self._rows[subject_id] = {f: 0 for f in BalanceField}
                self._touch(subject_id)

    async def get(self, subject_id: str) -> BalanceAggregate | None:
        await asyncio.sleep(0)
        with self._lock:
            row = self._rows.get(subject_id)
            if row is None:
                return None
            return BalanceAggregate(
                subject_id=subject_id,
                main_point=row[BalanceField.MAIN_POINT],
                sub_point=row[BalanceField.SUB_POINT],
                token_balance=row[BalanceField.TOKEN_BALANCE],
                updated_at=self._updated_at.get(subject_id),
            )

    async def increment(self, subject_id: str, field: BalanceField, amount: int) -> bool:
        await asyncio.sleep(0)
        with self._lock:
            row = self._rows.get(subject_id)
            if row is None:
                return False
            row[field] += amount
            self._touch(subject_id)
            return True

    async def decrement_if_sufficient(
        self, subject_id: str, field: BalanceField, amount: int
    ) -> bool:
        await asyncio.sleep(0)
        with self._lock:
            row = self._rows.get(subject_id)
            if row is None or row[field] < amount:
                return False
            row[field] -= amount
            self._touch(subject_id)
            return True

    async def transfer_if_sufficient(
        self,
        subject_id: str,
        debit_field: BalanceField,
        debit_amount: int,
        credit_field: BalanceField,
        credit_amount: int,
    ) -> bool:
        await asyncio.sleep(0)
        with self._lock:
            row = self._rows.get(subject_id)
            if row is None or row[debit_field] < debit_amount:
                return False
            row[debit_field] -= debit_amount
            row[credit_field] += credit_amount
            self._touch(subject_id)
            return True

    async def overwrite(self, aggregate: BalanceAggregate) -> BalanceAggregate:
        await asyncio.sleep(0)
        with self._lock:
            self._rows[aggregate.subject_id] = {
                BalanceField.MAIN_POINT: aggregate.main_point,
                BalanceField.SUB_POINT: aggregate.sub_point,
                BalanceField.TOKEN_BALANCE: aggregate.token_balance,
            }
            self._touch(aggregate.subject_id)
        result = await self.get(aggregate.subject_id)
        assert result is not None
        return result

    async def list_subject_ids(self) -> list[str]:
        await asyncio.sleep(0)
        with self._lock:
            return sorted(self._rows)

    # Test helpers

    def set_balance(
        self,
        subject_id: str,
        main_point: int = 0,
        sub_point: int = 0,
        token_balance: int = 0,
    ) -> None:
        """Force a row to given values, bypassing the ledger (simulates drift)."""
        with self._lock:
            self._rows[subject_id] = {
                BalanceField.MAIN_POINT: main_point,
                BalanceField.SUB_POINT: sub_point,
                BalanceField.TOKEN_BALANCE: token_balance,
            }
            self._touch(subject_id)

    def reset(self) -> None:
        """Clear all rows."""
        with self._lock:
            self._rows.clear()
            self._updated_at.clear()
