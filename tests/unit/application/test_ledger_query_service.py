"""Unit tests for LedgerQueryService."""

from datetime import timedelta
from uuid import uuid4

import pytest

from governance_ledger.application.services.ledger_query_service import (
    LedgerQueryService,
)
from governance_ledger.application.services.transition_executor import (
    TransitionExecutor,
)
from governance_ledger.domain.errors import LedgerEntryNotFoundError
from governance_ledger.domain.models import (
    EntryStatus,
    LedgerEntry,
    LedgerKind,
)
from governance_ledger.infrastructure.stubs import (
    BalanceRepositoryStub,
    LedgerRepositoryStub,
)
from tests.helpers import START_TIME, FakeTimeAuthority


@pytest.fixture
def executor(
    ledger_repo: LedgerRepositoryStub,
    balance_repo: BalanceRepositoryStub,
    fake_time_authority: FakeTimeAuthority,
) -> TransitionExecutor:
    return TransitionExecutor(ledger_repo, balance_repo, fake_time_authority)


@pytest.fixture
def queries(
    ledger_repo: LedgerRepositoryStub, balance_repo: BalanceRepositoryStub
) -> LedgerQueryService:
    return LedgerQueryService(ledger_repo, balance_repo)


class TestHistory:
    @pytest.mark.asyncio
    async def test_newest_first_with_paging(
        self,
        queries: LedgerQueryService,
        executor: TransitionExecutor,
        fake_time_authority: FakeTimeAuthority,
    ) -> None:
        for amount in (1, 2, 3):
            await executor.earn_main("user-1", amount)
            fake_time_authority.advance(seconds=60)

        page = await queries.get_history("user-1", limit=2)
        rest = await queries.get_history("user-1", limit=2, offset=2)

        assert [e.amount for e in page] == [3, 2]
        assert [e.amount for e in rest] == [1]

    @pytest.mark.asyncio
    async def test_filters_by_status_and_kind(
        self, queries: LedgerQueryService, executor: TransitionExecutor
    ) -> None:
        await executor.earn_main("user-1", 10)
        await executor.spend_main("user-1", 100)

        failed = await queries.get_history("user-1", status=EntryStatus.FAILED)
        earns = await queries.get_history("user-1", kinds=(LedgerKind.MAIN_EARN,))

        assert [e.kind for e in failed] == [LedgerKind.MAIN_SPEND]
        assert [e.amount for e in earns] == [10]

    @pytest.mark.asyncio
    async def test_date_range(
        self,
        queries: LedgerQueryService,
        executor: TransitionExecutor,
        fake_time_authority: FakeTimeAuthority,
    ) -> None:
        await executor.earn_sub("user-1", 1)
        fake_time_authority.advance(delta=timedelta(days=2))
        await executor.earn_sub("user-1", 2)

        entries = await queries.get_history(
            "user-1", since=START_TIME + timedelta(days=1), until=START_TIME + timedelta(days=3)
        )

        assert [e.amount for e in entries] == [2]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(("limit", "offset"), [(0, 0), (10, -1)])
    async def test_invalid_paging(
        self, queries: LedgerQueryService, limit: int, offset: int
    ) -> None:
        with pytest.raises(ValueError, match="paging"):
            await queries.get_history("user-1", limit=limit, offset=offset)

    @pytest.mark.asyncio
    async def test_inverted_range(self, queries: LedgerQueryService) -> None:
        with pytest.raises(ValueError, match="earlier"):
            await queries.get_history("user-1", since=START_TIME, until=START_TIME)


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_entry(
        self, queries: LedgerQueryService, executor: TransitionExecutor
    ) -> None:
        entry = await executor.earn_main("user-1", 5)
        assert (await queries.get_entry(entry.entry_id)).status is EntryStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_get_entry_missing(self, queries: LedgerQueryService) -> None:
        with pytest.raises(LedgerEntryNotFoundError):
            await queries.get_entry(uuid4())

    @pytest.mark.asyncio
    async def test_pending_entries(
        self, queries: LedgerQueryService, ledger_repo: LedgerRepositoryStub
    ) -> None:
        stuck = LedgerEntry(
            subject_id="user-1",
            kind=LedgerKind.MAIN_EARN,
            amount=5,
            created_at=START_TIME - timedelta(hours=1),
        )
        ledger_repo.add_entry(stuck)

        assert await queries.has_pending("user-1")
        assert not await queries.has_pending("user-2")
        assert [e.entry_id for e in await queries.get_pending(older_than=START_TIME)] == [
            stuck.entry_id
        ]

    @pytest.mark.asyncio
    async def test_unknown_balance_is_zero(self, queries: LedgerQueryService) -> None:
        balance = await queries.get_balance("nobody")
        assert (balance.main_point, balance.sub_point, balance.token_balance) == (0, 0, 0)


class TestStatistics:
    @pytest.mark.asyncio
    async def test_totals(
        self,
        queries: LedgerQueryService,
        executor: TransitionExecutor,
        balance_repo: BalanceRepositoryStub,
    ) -> None:
        await executor.earn_main("user-1", 100)
        await executor.earn_sub("user-1", 50)
        await executor.convert_sub_to_main("user-1", 30)
        await executor.exchange_main_to_token("user-1", 40)
        await executor.spend_main("user-1", 1000)

        stats = await queries.get_statistics("user-1")

        assert stats.total_main_earned == 100
        assert stats.total_sub_earned == 50
        assert stats.total_sub_converted == 30
        assert stats.total_main_from_conversion == 3
        assert stats.total_main_exchanged == 40
        assert stats.total_tokens_received == 4
        assert stats.total_main_spent == 0
        assert stats.entries_by_status[EntryStatus.CONFIRMED] == 4
        assert stats.entries_by_status[EntryStatus.FAILED] == 1
        assert stats.to_dict()["entries_by_status"]["FAILED"] == 1
