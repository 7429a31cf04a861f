"""Read-side queries over the ledger: history, pending entries, statistics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from governance_ledger.application.ports.balance_repository import (
    BalanceRepositoryProtocol,
)
from governance_ledger.application.ports.ledger_repository import (
    LedgerQuery,
    LedgerRepositoryProtocol,
)
from governance_ledger.domain.errors import LedgerEntryNotFoundError
from governance_ledger.domain.models import (
    BalanceAggregate,
    EntryStatus,
    LedgerEntry,
    LedgerKind,
)

DEFAULT_PAGE_SIZE = 50


@dataclass(frozen=True)
class UserLedgerStatistics:
    """Lifetime totals of CONFIRMED entries for one user."""

    subject_id: str
    total_main_earned: int = 0
    total_sub_earned: int = 0
    total_main_exchanged: int = 0
    total_sub_converted: int = 0
    total_main_spent: int = 0
    total_sub_spent: int = 0
    total_main_from_conversion: int = 0
    total_tokens_received: int = 0
    entries_by_status: dict[EntryStatus, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "total_main_earned": self.total_main_earned,
            "total_sub_earned": self.total_sub_earned,
            "total_main_exchanged": self.total_main_exchanged,
            "total_sub_converted": self.total_sub_converted,
            "total_main_spent": self.total_main_spent,
            "total_sub_spent": self.total_sub_spent,
            "total_main_from_conversion": self.total_main_from_conversion,
            "total_tokens_received": self.total_tokens_received,
            "entries_by_status": {s.value: n for s, n in self.entries_by_status.items()},
        }


class LedgerQueryService:
    """Read-only access to ledger entries and balances."""

    def __init__(
        self,
        ledger_repo: LedgerRepositoryProtocol,
        balance_repo: BalanceRepositoryProtocol,
    ) -> None:
        self._ledger = ledger_repo
        self._balances = balance_repo

    async def get_entry(self, entry_id: UUID) -> LedgerEntry:
        entry = await self._ledger.get(entry_id)
        if entry is None:
            raise LedgerEntryNotFoundError(entry_id)
        return entry

    async def get_history(
        self,
        subject_id: str,
        *,
        status: EntryStatus | None = None,
        kinds: tuple[LedgerKind, ...] = (),
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[LedgerEntry]:
        """A subject's entries, newest first.

        Raises:
            ValueError: Negative paging values or an inverted date range.
        """
        if limit < 1 or offset < 0:
            raise ValueError(f"invalid paging: limit={limit}, offset={offset}")
        if since is not None and until is not None and since >= until:
            raise ValueError("since must be earlier than until")
        return await self._ledger.query(
            LedgerQuery(
                subject_id=subject_id,
                status=status,
                kinds=kinds,
                since=since,
                until=until,
                limit=limit,
                offset=offset,
            )
        )

    async def get_pending(self, older_than: datetime | None = None) -> list[LedgerEntry]:
        """PENDING entries, oldest first. Old ones indicate a crashed execution."""
        return await self._ledger.list_pending(older_than)

    async def has_pending(self, subject_id: str) -> bool:
        entries = await self._ledger.query(
            LedgerQuery(subject_id=subject_id, status=EntryStatus.PENDING, limit=1)
        )
        return bool(entries)

    async def get_balance(self, subject_id: str) -> BalanceAggregate:
        """Stored balance, or a zero balance for unknown subjects."""
        balance = await self._balances.get(subject_id)
        return balance or BalanceAggregate(subject_id=subject_id)

    async def get_statistics(self, subject_id: str) -> UserLedgerStatistics:
        totals = await self._ledger.confirmed_totals(subject_id)
        return UserLedgerStatistics(
            subject_id=subject_id,
            total_main_earned=totals.amount(LedgerKind.MAIN_EARN),
            total_sub_earned=totals.amount(LedgerKind.SUB_EARN),
            total_main_exchanged=totals.amount(LedgerKind.MAIN_TO_TOKEN_EXCHANGE),
            total_sub_converted=totals.amount(LedgerKind.SUB_TO_MAIN_CONVERSION),
            total_main_spent=totals.amount(LedgerKind.MAIN_SPEND),
            total_sub_spent=totals.amount(LedgerKind.SUB_SPEND),
            total_main_from_conversion=totals.credit(LedgerKind.SUB_TO_MAIN_CONVERSION),
            total_tokens_received=totals.credit(LedgerKind.MAIN_TO_TOKEN_EXCHANGE),
            entries_by_status=await self._ledger.count_by_status(subject_id),
        )
