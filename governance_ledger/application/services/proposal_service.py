"""Proposal creation and lifecycle.

Creation follows reserve / attempt / confirm-or-abandon:

1. Reserve the next id from the sequence synchronizer.
2. Submit the proposal on chain with that id (bounded retries, timeout).
3. On success, store the proposal under the same id, create its empty
   tally and confirm the id to the synchronizer.
4. On failure, abandon the reservation. The id becomes a permanent gap.

Once the chain accepts an id it is confirmed even if the local write then
fails, so a later creation never submits the same id again.

Creations are serialized within the process so two callers never submit
the same reserved id.
"""

from __future__ import annotations

import asyncio
from datetime import datetime

from structlog import get_logger

from governance_ledger.application.ports.proposal_repository import (
    ProposalRepositoryProtocol,
)
from governance_ledger.application.ports.time_authority import TimeAuthorityProtocol
from governance_ledger.application.ports.vote_repository import VoteRepositoryProtocol
from governance_ledger.application.services.external_submission_service import (
    ExternalSubmissionService,
)
from governance_ledger.application.services.sequence_synchronizer import (
    SequenceSynchronizer,
)
from governance_ledger.domain.errors import (
    ExternalSubmissionError,
    InvalidIntentError,
    ProposalAlreadyExistsError,
    ProposalNotFoundError,
    ProposalStateError,
)
from governance_ledger.domain.models import Proposal

logger = get_logger(__name__)


class ProposalService:
    """Creates proposals and moves them to executed or canceled."""

    def __init__(
        self,
        proposal_repo: ProposalRepositoryProtocol,
        vote_repo: VoteRepositoryProtocol,
        synchronizer: SequenceSynchronizer,
        external_submission: ExternalSubmissionService,
        time_authority: TimeAuthorityProtocol,
    ) -> None:
        self._proposals = proposal_repo
        self._votes = vote_repo
        self._synchronizer = synchronizer
        self._external = external_submission
        self._time = time_authority
        self._create_lock = asyncio.Lock()

    async def create_proposal(
        self, description: str, proposer_id: str, deadline: datetime
    ) -> Proposal:
        """Create a proposal on chain and locally under the same id.

        Raises:
            InvalidIntentError: Empty description/proposer or deadline not in the future.
            SequenceNotReadyError: Synchronizer not initialized.
            ExternalSubmissionError: Chain submission failed; the id is abandoned.
            ProposalAlreadyExistsError: Local id collision (synchronizer refreshed).
            Exception: The local write failed after submission; the id is still confirmed.
        """
        if not description or not description.strip():
            raise InvalidIntentError("empty_description", "description must not be empty")
        if not proposer_id:
            raise InvalidIntentError("missing_proposer", "proposer_id must not be empty")
        if deadline.tzinfo is None:
            raise InvalidIntentError("naive_deadline", "deadline must be timezone-aware")
        now = self._time.now()
        if deadline <= now:
            raise InvalidIntentError(
                "deadline_in_past", f"deadline {deadline.isoformat()} is not in the future"
            )

        async with self._create_lock:
            proposal_id = self._synchronizer.reserve_next()
            log = logger.bind(proposal_id=proposal_id, proposer_id=proposer_id)
            log.info("proposal_id_reserved")

            try:
                tx_hash = await self._external.submit_proposal(
                    proposal_id, description, deadline
                )
            except ExternalSubmissionError:
                log.warning("proposal_id_abandoned")
                raise

            proposal = Proposal(
                proposal_id=proposal_id,
                description=description,
                proposer_id=proposer_id,
                deadline=deadline,
                created_at=self._time.now(),
                external_tx_hash=tx_hash,
            )
            try:
                await self._proposals.insert(proposal)
                await self._votes.ensure_aggregate(proposal_id)
            except ProposalAlreadyExistsError:
                log.error("proposal_id_collision", tx_hash=tx_hash)
                await self._synchronizer.refresh()
                raise
            except Exception as exc:
                # The chain already holds this id, so it must never be reserved again
                self._synchronizer.confirm(proposal_id)
                log.error(
                    "proposal_local_write_failed",
                    tx_hash=tx_hash,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                raise

            self._synchronizer.confirm(proposal_id)
            log.info("proposal_created", tx_hash=tx_hash, deadline=deadline.isoformat())
            return proposal

    async def get_proposal(self, proposal_id: int) -> Proposal:
        proposal = await self._proposals.get(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(proposal_id)
        return proposal

    async def mark_executed(self, proposal_id: int) -> Proposal:
        """Mark a proposal executed. Repeating the call is a logged no-op.

        Raises:
            ProposalNotFoundError: Unknown proposal.
            ProposalStateError: The proposal was canceled.
        """
        proposal = await self.get_proposal(proposal_id)
        if proposal.executed:
            logger.warning("proposal_already_executed", proposal_id=proposal_id)
            return proposal
        updated = proposal.mark_executed()
        if not await self._proposals.set_executed(proposal_id):
            # Lost a race against a concurrent cancel
            raise ProposalStateError(proposal_id, "CANCELED", "EXECUTED")
        logger.info("proposal_executed", proposal_id=proposal_id)
        return updated

    async def mark_canceled(self, proposal_id: int) -> Proposal:
        """Mark a proposal canceled. Repeating the call is a logged no-op.

        Raises:
            ProposalNotFoundError: Unknown proposal.
            ProposalStateError: The proposal was executed.
        """
        proposal = await self.get_proposal(proposal_id)
        if proposal.canceled:
            logger.warning("proposal_already_canceled", proposal_id=proposal_id)
            return proposal
        updated = proposal.mark_canceled()
        if not await self._proposals.set_canceled(proposal_id):
            raise ProposalStateError(proposal_id, "EXECUTED", "CANCELED")
        logger.info("proposal_canceled", proposal_id=proposal_id)
        return updated
