"""Balance aggregate store port.

Every mutation is one conditional statement at the storage boundary.
Implementations must never read a balance, check it in process and then
write it back.
"""

from __future__ import annotations

from abc import abstractmethod
from enum import Enum
from typing import Protocol, runtime_checkable

from governance_ledger.domain.models import BalanceAggregate


class BalanceField(str, Enum):
    """Counter columns of a balance row."""

    MAIN_POINT = "main_point"
    SUB_POINT = "sub_point"
    TOKEN_BALANCE = "token_balance"


@runtime_checkable
class BalanceRepositoryProtocol(Protocol):
    """Protocol for per-user balance aggregates."""

    @abstractmethod
    async def ensure_exists(self, subject_id: str) -> None:
        """Create a zero balance row if none exists.

        Concurrent callers must all succeed; a duplicate create is treated
        as already existing.
        """
        ...

    @abstractmethod
    async def get(self, subject_id: str) -> BalanceAggregate | None:
        """Read a balance snapshot."""
        ...

    @abstractmethod
    async def increment(self, subject_id: str, field: BalanceField, amount: int) -> bool:
        """Unconditionally add ``amount`` to ``field``.

        Returns:
            True if a row was affected.
        """
        ...

    @abstractmethod
    async def decrement_if_sufficient(
        self, subject_id: str, field: BalanceField, amount: int
    ) -> bool:
        """Subtract ``amount`` from ``field`` iff ``field >= amount``.

        Returns:
            True if the row was updated, False on insufficient balance.
        """
        ...

    @abstractmethod
    async def transfer_if_sufficient(
        self,
        subject_id: str,
        debit_field: BalanceField,
        debit_amount: int,
        credit_field: BalanceField,
        credit_amount: int,
    ) -> bool:
        """Debit one field and credit another in a single conditional statement.

        Returns:
            True if both halves applied, False if neither did.
        """
        ...

    @abstractmethod
    async def overwrite(self, aggregate: BalanceAggregate) -> BalanceAggregate:
        """Replace all counters (reconciliation only). Creates the row if absent."""
        ...

    @abstractmethod
    async def list_subject_ids(self) -> list[str]:
        """List every subject with a balance row."""
        ...
