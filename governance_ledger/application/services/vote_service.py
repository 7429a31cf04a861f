"""Vote transition: records one vote and projects it onto the proposal tally.

Flow for cast_vote:

1. Proposal must exist and be votable (not executed, not canceled,
   deadline not passed).
2. Pre-check for an existing vote. This only saves work; the store's
   (proposal_id, voter_id) constraint is the authority.
3. Resolve voting power.
4. Insert the UserVote, claiming the (proposal_id, voter_id) slot. A
   duplicate raises DuplicateVoteError with no other side effect.
5. When an external submitter is configured, submit the vote on chain.
   Only the slot holder gets here, so a voter reaches the chain at most
   once. If submission fails the slot is released and nothing else is
   written.
6. Record a PENDING VOTE_CAST ledger entry keyed by
   ``vote_subject_id(proposal_id)``, ensure the tally row exists, then
   apply one blind atomic increment. The entry becomes CONFIRMED, or
   FAILED with AggregateUpdateFailedError raised to the caller. If the
   entry itself cannot be written the tally is left alone and the same
   error is raised; the reconciler rebuilds the tally from the votes.

Tally increments are blind atomic updates; the tally's version column is
bumped on each one and kept for auditing only.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace

from structlog import get_logger

from governance_ledger.application.ports.ledger_repository import (
    LedgerRepositoryProtocol,
)
from governance_ledger.application.ports.proposal_repository import (
    ProposalRepositoryProtocol,
)
from governance_ledger.application.ports.time_authority import TimeAuthorityProtocol
from governance_ledger.application.ports.vote_repository import VoteRepositoryProtocol
from governance_ledger.application.ports.voting_power import (
    VotingPowerProviderProtocol,
)
from governance_ledger.application.services.external_submission_service import (
    ExternalSubmissionService,
)
from governance_ledger.domain.errors import (
    AggregateUpdateFailedError,
    DuplicateVoteError,
    InvalidIntentError,
    ProposalNotFoundError,
    VotingClosedError,
)
from governance_ledger.domain.models import (
    LedgerEntry,
    LedgerKind,
    UserVote,
    VoteAggregate,
    vote_subject_id,
)
from governance_ledger.infrastructure.monitoring.metrics import LedgerMetrics

logger = get_logger(__name__)


class VoteService:
    """Casts votes and reads tallies."""

    def __init__(
        self,
        proposal_repo: ProposalRepositoryProtocol,
        vote_repo: VoteRepositoryProtocol,
        ledger_repo: LedgerRepositoryProtocol,
        time_authority: TimeAuthorityProtocol,
        voting_power_provider: VotingPowerProviderProtocol,
        external_submission: ExternalSubmissionService | None = None,
        metrics: LedgerMetrics | None = None,
    ) -> None:
        self._proposals = proposal_repo
        self._votes = vote_repo
        self._ledger = ledger_repo
        self._time = time_authority
        self._voting_power = voting_power_provider
        self._external = external_submission
        self._metrics = metrics

    async def cast_vote(
        self,
        proposal_id: int,
        voter_id: str,
        support: bool,
        voting_power: int | None = None,
    ) -> UserVote:
        """Cast a vote.

        Args:
            proposal_id: Target proposal.
            voter_id: Voting user.
            support: True for, False against.
            voting_power: Explicit power; resolved from the provider if None.

        Returns:
            The stored vote.

        Raises:
            ProposalNotFoundError: Unknown proposal.
            VotingClosedError: Proposal executed, canceled or past deadline.
            DuplicateVoteError: Voter already voted on this proposal.
            InvalidIntentError: Voting power is not positive.
            ExternalSubmissionError: On-chain submission failed.
            AggregateUpdateFailedError: Vote stored but tally did not move.
        """
        log = logger.bind(proposal_id=proposal_id, voter_id=voter_id, support=support)

        # Step 1: proposal must accept votes
        proposal = await self._proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(proposal_id)
        now = self._time.now()
        if not proposal.can_vote(now):
            state = proposal.status_at(now).value
            log.info("vote_rejected_closed", state=state)
            raise VotingClosedError(proposal_id, state)

        # Step 2: pre-check (the unique constraint is authoritative)
        existing = await self._votes.get_vote(proposal_id, voter_id)
        if existing is not None:
            raise DuplicateVoteError(
                proposal_id=proposal_id,
                voter_id=voter_id,
                existing_vote_id=existing.vote_id,
                voted_at=existing.voted_at,
            )

        # Step 3: voting power
        if voting_power is None:
            voting_power = await self._voting_power.voting_power(voter_id)
        if voting_power <= 0:
            raise InvalidIntentError(
                "no_voting_power", f"Voter {voter_id} has no voting power"
            )

        # Step 4: claim the slot guarded by (proposal_id, voter_id)
        vote = UserVote(
            proposal_id=proposal_id,
            voter_id=voter_id,
            support=support,
            voting_power=voting_power,
            voted_at=self._time.now(),
        )
        try:
            await self._votes.insert_vote(vote)
        except DuplicateVoteError:
            log.info("vote_rejected_duplicate")
            raise

        # Step 5: on-chain submission by the slot holder only
        if self._external is not None:
            vote = await self._submit_claimed_vote(self._external, vote)

        # Step 6: audit entry plus tally increment, not cancellable from here
        await asyncio.shield(self._project_vote(vote))

        if self._metrics is not None:
            self._metrics.record_vote(support)
        log.info("vote_cast", vote_id=str(vote.vote_id), voting_power=str(voting_power))
        return vote

    async def _submit_claimed_vote(
        self, external: ExternalSubmissionService, vote: UserVote
    ) -> UserVote:
        try:
            tx_hash = await external.submit_vote(
                vote.proposal_id, vote.voter_id, vote.support
            )
        except BaseException:
            await asyncio.shield(self._votes.delete_vote(vote.proposal_id, vote.voter_id))
            logger.warning(
                "vote_slot_released",
                proposal_id=vote.proposal_id,
                voter_id=vote.voter_id,
            )
            raise
        try:
            await self._votes.set_external_tx_hash(
                vote.proposal_id, vote.voter_id, tx_hash
            )
        except Exception as exc:
            # The vote is on chain and stored; only the receipt link is missing
            logger.error(
                "vote_tx_hash_not_recorded",
                proposal_id=vote.proposal_id,
                voter_id=vote.voter_id,
                tx_hash=tx_hash,
                error=str(exc),
            )
        return replace(vote, external_tx_hash=tx_hash)

    async def _project_vote(self, vote: UserVote) -> None:
        entry = LedgerEntry(
            subject_id=vote_subject_id(vote.proposal_id),
            kind=LedgerKind.VOTE_CAST,
            amount=vote.voting_power,
            support=vote.support,
            created_at=vote.voted_at,
            description=f"vote by {vote.voter_id}",
        )
        recorded = False
        error: Exception | None = None
        try:
            await self._ledger.insert_pending(entry)
            recorded = True
            await self._votes.ensure_aggregate(vote.proposal_id)
            applied = await self._votes.increment_aggregate(
                vote.proposal_id, vote.support, vote.voting_power
            )
        except Exception as exc:
            applied = False
            error = exc

        if applied:
            await self._ledger.finalize(entry.confirmed(self._time.now()))
            if self._metrics is not None:
                self._metrics.record_entry(entry.kind.value, "CONFIRMED")
            return

        if recorded:
            await self._ledger.finalize(
                entry.failed(self._time.now(), "aggregate_update_failed")
            )
            if self._metrics is not None:
                self._metrics.record_entry(entry.kind.value, "FAILED")
        logger.error(
            "vote_tally_integrity_concern",
            proposal_id=vote.proposal_id,
            vote_id=str(vote.vote_id),
            audit_entry_recorded=recorded,
            error=str(error) if error else "zero rows affected",
        )
        raise AggregateUpdateFailedError(
            "vote", vote.proposal_id, str(error) if error else "zero rows affected"
        ) from error

    async def get_tally(self, proposal_id: int) -> VoteAggregate:
        """Current tally; a zero tally if no vote has been projected yet.

        Raises:
            ProposalNotFoundError: Unknown proposal.
        """
        if await self._proposals.get(proposal_id) is None:
            raise ProposalNotFoundError(proposal_id)
        aggregate = await self._votes.get_aggregate(proposal_id)
        return aggregate or VoteAggregate(proposal_id=proposal_id)

    async def get_vote(self, proposal_id: int, voter_id: str) -> UserVote | None:
        return await self._votes.get_vote(proposal_id, voter_id)

    async def has_voted(self, proposal_id: int, voter_id: str) -> bool:
        return await self._votes.get_vote(proposal_id, voter_id) is not None

    async def list_votes(self, proposal_id: int) -> list[UserVote]:
        return await self._votes.list_votes(proposal_id)

    async def list_votes_by_voter(self, voter_id: str) -> list[UserVote]:
        return await self._votes.list_votes_by_voter(voter_id)
