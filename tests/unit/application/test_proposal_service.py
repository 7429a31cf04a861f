"""Unit tests for ProposalService.

Tests cover:
- Reserve / submit / confirm: local id matches the on-chain id
- Failed submission abandons the id (gap) and stores nothing
- Local id collision refreshes the synchronizer
- A local write failure after submission still consumes the id
- Concurrent creations receive distinct ids
- Execute / cancel lifecycle
"""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from governance_ledger.application.services.external_submission_service import (
    ExternalSubmissionService,
)
from governance_ledger.application.services.proposal_service import ProposalService
from governance_ledger.application.services.sequence_synchronizer import (
    SequenceSynchronizer,
)
from governance_ledger.config import TEST_CHAIN_GATEWAY_CONFIG
from governance_ledger.domain.errors import (
    ExternalSubmissionError,
    InvalidIntentError,
    ProposalAlreadyExistsError,
    ProposalNotFoundError,
    ProposalStateError,
    SequenceNotReadyError,
)
from governance_ledger.infrastructure.stubs import (
    ExternalAuthorityStub,
    ProposalRepositoryStub,
    VoteRepositoryStub,
)
from tests.helpers import START_TIME, FakeTimeAuthority, make_proposal

DEADLINE = START_TIME + timedelta(days=3)


@pytest.fixture
def synchronizer(
    authority: ExternalAuthorityStub, fake_time_authority: FakeTimeAuthority
) -> SequenceSynchronizer:
    return SequenceSynchronizer(authority, fake_time_authority)


@pytest.fixture
def proposal_service(
    proposal_repo: ProposalRepositoryStub,
    vote_repo: VoteRepositoryStub,
    synchronizer: SequenceSynchronizer,
    authority: ExternalAuthorityStub,
    fake_time_authority: FakeTimeAuthority,
) -> ProposalService:
    return ProposalService(
        proposal_repo,
        vote_repo,
        synchronizer,
        ExternalSubmissionService(authority, TEST_CHAIN_GATEWAY_CONFIG),
        fake_time_authority,
    )


class TestCreateProposal:
    """Creation under a synchronized id."""

    @pytest.mark.asyncio
    async def test_creates_with_next_id(
        self,
        proposal_service: ProposalService,
        synchronizer: SequenceSynchronizer,
        authority: ExternalAuthorityStub,
        vote_repo: VoteRepositoryStub,
    ) -> None:
        await synchronizer.initialize()

        proposal = await proposal_service.create_proposal("Fund garden", "alice", DEADLINE)

        assert proposal.proposal_id == 42
        assert authority.proposals[0].proposal_id == 42
        assert proposal.external_tx_hash == authority.proposals[0].tx_hash
        assert synchronizer.highest_confirmed_id == 42
        tally = await vote_repo.get_aggregate(42)
        assert tally is not None
        assert tally.total_voters == 0

    @pytest.mark.asyncio
    async def test_not_ready_before_initialize(
        self, proposal_service: ProposalService, authority: ExternalAuthorityStub
    ) -> None:
        with pytest.raises(SequenceNotReadyError):
            await proposal_service.create_proposal("x", "alice", DEADLINE)
        assert authority.calls["submit_proposal"] == 0

    @pytest.mark.asyncio
    async def test_failed_submission_leaves_gap(
        self,
        proposal_service: ProposalService,
        synchronizer: SequenceSynchronizer,
        authority: ExternalAuthorityStub,
        proposal_repo: ProposalRepositoryStub,
    ) -> None:
        """A failed id is never confirmed; the chain later moves past it."""
        await synchronizer.initialize()
        authority.fail_next("submit_proposal", times=TEST_CHAIN_GATEWAY_CONFIG.max_attempts)

        with pytest.raises(ExternalSubmissionError):
            await proposal_service.create_proposal("first", "alice", DEADLINE)

        assert await proposal_repo.list_ids() == []
        assert synchronizer.highest_confirmed_id == 41

        # Another node used 42 meanwhile
        authority.highest_id = 42
        await synchronizer.refresh()
        proposal = await proposal_service.create_proposal("second", "alice", DEADLINE)
        assert proposal.proposal_id == 43

    @pytest.mark.asyncio
    async def test_retry_then_success(
        self,
        proposal_service: ProposalService,
        synchronizer: SequenceSynchronizer,
        authority: ExternalAuthorityStub,
    ) -> None:
        await synchronizer.initialize()
        authority.fail_next("submit_proposal", times=2)

        proposal = await proposal_service.create_proposal("x", "alice", DEADLINE)

        assert proposal.proposal_id == 42
        assert authority.calls["submit_proposal"] == 3

    @pytest.mark.asyncio
    async def test_local_collision_refreshes(
        self,
        proposal_service: ProposalService,
        synchronizer: SequenceSynchronizer,
        authority: ExternalAuthorityStub,
        proposal_repo: ProposalRepositoryStub,
    ) -> None:
        """Degraded start at 0 collides with an existing row and resyncs."""
        authority.fail_next("query_highest_id")
        await synchronizer.initialize()
        proposal_repo.add_proposal(make_proposal(1))

        with pytest.raises(ProposalAlreadyExistsError):
            await proposal_service.create_proposal("x", "alice", DEADLINE)

        assert not synchronizer.degraded
        assert synchronizer.reserve_next() == 42

    @pytest.mark.asyncio
    async def test_local_write_failure_still_consumes_id(
        self,
        proposal_service: ProposalService,
        synchronizer: SequenceSynchronizer,
        authority: ExternalAuthorityStub,
        vote_repo: VoteRepositoryStub,
    ) -> None:
        """An id the chain accepted is never submitted a second time."""
        await synchronizer.initialize()
        vote_repo.ensure_aggregate = AsyncMock(side_effect=[RuntimeError("db down"), None])

        with pytest.raises(RuntimeError, match="db down"):
            await proposal_service.create_proposal("first", "alice", DEADLINE)
        assert synchronizer.highest_confirmed_id == 42

        proposal = await proposal_service.create_proposal("second", "alice", DEADLINE)

        assert proposal.proposal_id == 43
        assert [p.proposal_id for p in authority.proposals] == [42, 43]

    @pytest.mark.asyncio
    async def test_concurrent_creations_get_distinct_ids(
        self, proposal_service: ProposalService, synchronizer: SequenceSynchronizer
    ) -> None:
        await synchronizer.initialize()

        proposals = await asyncio.gather(
            *(proposal_service.create_proposal(f"p{i}", "alice", DEADLINE) for i in range(5))
        )

        assert sorted(p.proposal_id for p in proposals) == [42, 43, 44, 45, 46]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("description", "proposer", "deadline", "reason"),
        [
            ("  ", "alice", DEADLINE, "empty_description"),
            ("x", "", DEADLINE, "missing_proposer"),
            ("x", "alice", DEADLINE.replace(tzinfo=None), "naive_deadline"),
            ("x", "alice", START_TIME, "deadline_in_past"),
        ],
    )
    async def test_invalid_input(
        self,
        proposal_service: ProposalService,
        synchronizer: SequenceSynchronizer,
        description: str,
        proposer: str,
        deadline,
        reason: str,
    ) -> None:
        await synchronizer.initialize()
        with pytest.raises(InvalidIntentError) as exc_info:
            await proposal_service.create_proposal(description, proposer, deadline)
        assert exc_info.value.reason == reason


class TestLifecycle:
    """Execute and cancel."""

    @pytest.mark.asyncio
    async def test_execute(
        self, proposal_service: ProposalService, proposal_repo: ProposalRepositoryStub
    ) -> None:
        proposal_repo.add_proposal(make_proposal(7))

        result = await proposal_service.mark_executed(7)

        assert result.executed
        assert (await proposal_repo.get(7)).executed

    @pytest.mark.asyncio
    async def test_execute_twice_is_noop(
        self, proposal_service: ProposalService, proposal_repo: ProposalRepositoryStub
    ) -> None:
        proposal_repo.add_proposal(make_proposal(7, executed=True))
        assert (await proposal_service.mark_executed(7)).executed

    @pytest.mark.asyncio
    async def test_cancel_after_execute_rejected(
        self, proposal_service: ProposalService, proposal_repo: ProposalRepositoryStub
    ) -> None:
        proposal_repo.add_proposal(make_proposal(7, executed=True))
        with pytest.raises(ProposalStateError):
            await proposal_service.mark_canceled(7)

    @pytest.mark.asyncio
    async def test_cancel(
        self, proposal_service: ProposalService, proposal_repo: ProposalRepositoryStub
    ) -> None:
        proposal_repo.add_proposal(make_proposal(7))
        assert (await proposal_service.mark_canceled(7)).canceled

    @pytest.mark.asyncio
    async def test_unknown_proposal(self, proposal_service: ProposalService) -> None:
        with pytest.raises(ProposalNotFoundError):
            await proposal_service.get_proposal(5)
