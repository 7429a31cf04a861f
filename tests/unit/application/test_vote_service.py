"""Unit tests for VoteService.

Tests cover:
- Successful vote: stored once, tally incremented, VOTE_CAST entry CONFIRMED
- Duplicate votes (sequential and concurrent) rejected without side effects
- Closed proposals (deadline, executed, canceled) and unknown proposals
- Voting power from the token balance provider
- Tally update failure: entry FAILED, AggregateUpdateFailedError raised
- External submission only by the voter holding the (proposal, voter) slot
- Audit entry write failure: tally untouched, AggregateUpdateFailedError raised
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from governance_ledger.application.services.external_submission_service import (
    ExternalSubmissionService,
)
from governance_ledger.application.services.vote_service import VoteService
from governance_ledger.application.services.voting_power_service import (
    TokenBalanceVotingPowerProvider,
)
from governance_ledger.config import TEST_CHAIN_GATEWAY_CONFIG
from governance_ledger.domain.errors import (
    AggregateUpdateFailedError,
    DuplicateVoteError,
    ExternalSubmissionError,
    InvalidIntentError,
    ProposalNotFoundError,
    VotingClosedError,
)
from governance_ledger.domain.models import EntryStatus, LedgerKind
from governance_ledger.infrastructure.monitoring.metrics import LedgerMetrics
from governance_ledger.infrastructure.stubs import (
    BalanceRepositoryStub,
    ExternalAuthorityStub,
    LedgerRepositoryStub,
    ProposalRepositoryStub,
    VoteRepositoryStub,
)
from tests.helpers import ONE_DAY_LATER, FakeTimeAuthority, make_proposal, sample_total

TOKEN = 10**18


@pytest.fixture
def metrics() -> LedgerMetrics:
    return LedgerMetrics()


@pytest.fixture
def vote_service(
    proposal_repo: ProposalRepositoryStub,
    vote_repo: VoteRepositoryStub,
    ledger_repo: LedgerRepositoryStub,
    balance_repo: BalanceRepositoryStub,
    fake_time_authority: FakeTimeAuthority,
    metrics: LedgerMetrics,
) -> VoteService:
    proposal_repo.add_proposal(make_proposal(7))
    return VoteService(
        proposal_repo,
        vote_repo,
        ledger_repo,
        fake_time_authority,
        TokenBalanceVotingPowerProvider(balance_repo),
        metrics=metrics,
    )


class TestCastVote:
    """Happy path."""

    @pytest.mark.asyncio
    async def test_vote_increments_tally(
        self, vote_service: VoteService, vote_repo: VoteRepositoryStub
    ) -> None:
        vote = await vote_service.cast_vote(7, "u1", True, voting_power=3 * TOKEN)

        assert vote.voting_power == 3 * TOKEN
        tally = await vote_service.get_tally(7)
        assert tally.for_votes == 3 * TOKEN
        assert tally.against_votes == 0
        assert tally.total_voters == 1
        assert tally.for_voters == 1
        assert vote_repo.vote_count == 1

    @pytest.mark.asyncio
    async def test_vote_records_confirmed_audit_entry(
        self, vote_service: VoteService, ledger_repo: LedgerRepositoryStub
    ) -> None:
        await vote_service.cast_vote(7, "u1", False, voting_power=5)

        (entry,) = ledger_repo.entries
        assert entry.kind is LedgerKind.VOTE_CAST
        assert entry.subject_id == "proposal:7"
        assert entry.amount == 5
        assert entry.support is False
        assert entry.status is EntryStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_voting_power_from_token_balance(
        self, vote_service: VoteService, balance_repo: BalanceRepositoryStub
    ) -> None:
        """2 tokens at 18 decimals -> voting power 2 * 10**18."""
        balance_repo.set_balance("u1", token_balance=2)

        vote = await vote_service.cast_vote(7, "u1", True)

        assert vote.voting_power == 2 * TOKEN

    @pytest.mark.asyncio
    async def test_no_voting_power_rejected(
        self, vote_service: VoteService, vote_repo: VoteRepositoryStub
    ) -> None:
        with pytest.raises(InvalidIntentError) as exc_info:
            await vote_service.cast_vote(7, "u1", True)
        assert exc_info.value.reason == "no_voting_power"
        assert vote_repo.vote_count == 0

    @pytest.mark.asyncio
    async def test_tally_invariant_over_many_votes(self, vote_service: VoteService) -> None:
        """total_voters == for_voters + against_voters after mixed votes."""
        for i in range(9):
            await vote_service.cast_vote(7, f"u{i}", i % 3 != 0, voting_power=i + 1)

        tally = await vote_service.get_tally(7)
        assert tally.total_voters == tally.for_voters + tally.against_voters == 9
        assert tally.against_voters == 3
        assert tally.against_votes == 1 + 4 + 7

    @pytest.mark.asyncio
    async def test_metrics_recorded(
        self, vote_service: VoteService, metrics: LedgerMetrics
    ) -> None:
        await vote_service.cast_vote(7, "u1", True, voting_power=1)

        assert sample_total(metrics, "votes_cast_total", support="for") == 1
        assert (
            sample_total(
                metrics, "ledger_entries_total", kind="VOTE_CAST", status="CONFIRMED"
            )
            == 1
        )


class TestDuplicateVotes:
    """One vote per (proposal, voter)."""

    @pytest.mark.asyncio
    async def test_second_vote_rejected(
        self, vote_service: VoteService, ledger_repo: LedgerRepositoryStub
    ) -> None:
        first = await vote_service.cast_vote(7, "u1", True, voting_power=10)

        with pytest.raises(DuplicateVoteError) as exc_info:
            await vote_service.cast_vote(7, "u1", False, voting_power=10)

        assert exc_info.value.existing_vote_id == first.vote_id
        tally = await vote_service.get_tally(7)
        assert tally.total_voters == 1
        assert tally.against_votes == 0
        assert len(ledger_repo.entries) == 1

    @pytest.mark.asyncio
    async def test_concurrent_votes_store_exactly_one(
        self, vote_service: VoteService, vote_repo: VoteRepositoryStub
    ) -> None:
        """Two simultaneous votes by u1 on 7 -> one stored, total_voters += 1."""
        results = await asyncio.gather(
            vote_service.cast_vote(7, "u1", True, voting_power=10),
            vote_service.cast_vote(7, "u1", True, voting_power=10),
            return_exceptions=True,
        )

        errors = [r for r in results if isinstance(r, Exception)]
        assert len(errors) == 1
        assert isinstance(errors[0], DuplicateVoteError)
        assert vote_repo.vote_count == 1
        tally = await vote_service.get_tally(7)
        assert tally.total_voters == 1
        assert tally.for_votes == 10

    @pytest.mark.asyncio
    async def test_same_voter_may_vote_on_other_proposals(
        self, vote_service: VoteService, proposal_repo: ProposalRepositoryStub
    ) -> None:
        proposal_repo.add_proposal(make_proposal(8))

        await vote_service.cast_vote(7, "u1", True, voting_power=1)
        await vote_service.cast_vote(8, "u1", True, voting_power=1)

        assert len(await vote_service.list_votes_by_voter("u1")) == 2
        assert await vote_service.has_voted(8, "u1")


class TestClosedProposals:
    """Votability checks."""

    @pytest.mark.asyncio
    async def test_unknown_proposal(self, vote_service: VoteService) -> None:
        with pytest.raises(ProposalNotFoundError):
            await vote_service.cast_vote(99, "u1", True, voting_power=1)

    @pytest.mark.asyncio
    async def test_deadline_passed(
        self, vote_service: VoteService, fake_time_authority: FakeTimeAuthority
    ) -> None:
        fake_time_authority.set_time(ONE_DAY_LATER)

        with pytest.raises(VotingClosedError) as exc_info:
            await vote_service.cast_vote(7, "u1", True, voting_power=1)
        assert exc_info.value.state == "EXPIRED"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("flags", "state"),
        [({"executed": True}, "EXECUTED"), ({"canceled": True}, "CANCELED")],
    )
    async def test_finished_proposal(
        self,
        vote_service: VoteService,
        proposal_repo: ProposalRepositoryStub,
        flags: dict,
        state: str,
    ) -> None:
        proposal_repo.add_proposal(make_proposal(9, **flags))

        with pytest.raises(VotingClosedError) as exc_info:
            await vote_service.cast_vote(9, "u1", True, voting_power=1)
        assert exc_info.value.state == state

    @pytest.mark.asyncio
    async def test_tally_of_unknown_proposal(self, vote_service: VoteService) -> None:
        with pytest.raises(ProposalNotFoundError):
            await vote_service.get_tally(404)

    @pytest.mark.asyncio
    async def test_tally_without_votes_is_zero(self, vote_service: VoteService) -> None:
        tally = await vote_service.get_tally(7)
        assert tally.total_voters == 0
        assert tally.total_votes == 0


class TestTallyFailure:
    """The vote is stored but the tally does not move."""

    @pytest.mark.asyncio
    async def test_zero_rows_affected(
        self,
        vote_service: VoteService,
        vote_repo: VoteRepositoryStub,
        ledger_repo: LedgerRepositoryStub,
    ) -> None:
        vote_repo.increment_aggregate = AsyncMock(return_value=False)

        with pytest.raises(AggregateUpdateFailedError) as exc_info:
            await vote_service.cast_vote(7, "u1", True, voting_power=1)

        assert exc_info.value.aggregate == "vote"
        (entry,) = ledger_repo.entries
        assert entry.status is EntryStatus.FAILED
        assert entry.failure_reason == "aggregate_update_failed"
        assert await vote_service.has_voted(7, "u1")

    @pytest.mark.asyncio
    async def test_store_error(
        self,
        vote_service: VoteService,
        vote_repo: VoteRepositoryStub,
        ledger_repo: LedgerRepositoryStub,
    ) -> None:
        vote_repo.ensure_aggregate = AsyncMock(side_effect=RuntimeError("deadlock"))

        with pytest.raises(AggregateUpdateFailedError):
            await vote_service.cast_vote(7, "u1", True, voting_power=1)

        assert ledger_repo.entries[0].status is EntryStatus.FAILED

    @pytest.mark.asyncio
    async def test_audit_entry_write_error(
        self,
        vote_service: VoteService,
        vote_repo: VoteRepositoryStub,
        ledger_repo: LedgerRepositoryStub,
    ) -> None:
        ledger_repo.insert_pending = AsyncMock(side_effect=RuntimeError("disk full"))

        with pytest.raises(AggregateUpdateFailedError) as exc_info:
            await vote_service.cast_vote(7, "u1", True, voting_power=1)

        assert "disk full" in str(exc_info.value)
        assert ledger_repo.entries == []
        assert await vote_repo.get_aggregate(7) is None
        assert await vote_service.has_voted(7, "u1")


class TestExternalSubmission:
    """On-chain submission after the local slot is claimed."""

    @pytest.fixture
    def chain_vote_service(
        self,
        proposal_repo: ProposalRepositoryStub,
        vote_repo: VoteRepositoryStub,
        ledger_repo: LedgerRepositoryStub,
        balance_repo: BalanceRepositoryStub,
        fake_time_authority: FakeTimeAuthority,
        authority: ExternalAuthorityStub,
    ) -> VoteService:
        proposal_repo.add_proposal(make_proposal(7))
        return VoteService(
            proposal_repo,
            vote_repo,
            ledger_repo,
            fake_time_authority,
            TokenBalanceVotingPowerProvider(balance_repo),
            external_submission=ExternalSubmissionService(
                authority, TEST_CHAIN_GATEWAY_CONFIG
            ),
        )

    @pytest.mark.asyncio
    async def test_tx_hash_stored(
        self, chain_vote_service: VoteService, authority: ExternalAuthorityStub
    ) -> None:
        vote = await chain_vote_service.cast_vote(7, "u1", True, voting_power=1)

        assert vote.external_tx_hash == authority.votes[0].tx_hash

    @pytest.mark.asyncio
    async def test_failed_submission_writes_nothing(
        self,
        chain_vote_service: VoteService,
        authority: ExternalAuthorityStub,
        vote_repo: VoteRepositoryStub,
        ledger_repo: LedgerRepositoryStub,
    ) -> None:
        authority.fail_always("submit_vote")

        with pytest.raises(ExternalSubmissionError):
            await chain_vote_service.cast_vote(7, "u1", True, voting_power=1)

        assert vote_repo.vote_count == 0
        assert ledger_repo.entries == []

    @pytest.mark.asyncio
    async def test_tx_hash_persisted_on_stored_vote(
        self, chain_vote_service: VoteService, vote_repo: VoteRepositoryStub
    ) -> None:
        vote = await chain_vote_service.cast_vote(7, "u1", True, voting_power=1)

        stored = await vote_repo.get_vote(7, "u1")
        assert stored is not None
        assert stored.external_tx_hash == vote.external_tx_hash

    @pytest.mark.asyncio
    async def test_failed_submission_releases_slot(
        self,
        chain_vote_service: VoteService,
        authority: ExternalAuthorityStub,
        vote_repo: VoteRepositoryStub,
    ) -> None:
        authority.fail_always("submit_vote")
        with pytest.raises(ExternalSubmissionError):
            await chain_vote_service.cast_vote(7, "u1", True, voting_power=1)

        authority.clear_failures()
        vote = await chain_vote_service.cast_vote(7, "u1", False, voting_power=1)

        assert vote.support is False
        assert vote_repo.vote_count == 1
        assert [(v.voter_id, v.support) for v in authority.votes] == [("u1", False)]

    @pytest.mark.asyncio
    async def test_concurrent_votes_reach_chain_once(
        self,
        chain_vote_service: VoteService,
        authority: ExternalAuthorityStub,
        vote_repo: VoteRepositoryStub,
    ) -> None:
        results = await asyncio.gather(
            chain_vote_service.cast_vote(7, "u1", True, voting_power=1),
            chain_vote_service.cast_vote(7, "u1", False, voting_power=1),
            return_exceptions=True,
        )

        stored = [r for r in results if not isinstance(r, BaseException)]
        rejected = [r for r in results if isinstance(r, DuplicateVoteError)]
        assert len(stored) == 1
        assert len(rejected) == 1
        assert len(authority.votes) == 1
        assert authority.votes[0].support is stored[0].support
        assert vote_repo.vote_count == 1
        tally = await chain_vote_service.get_tally(7)
        assert tally.total_voters == 1
