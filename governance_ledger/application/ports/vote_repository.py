"""Vote store port: individual votes plus the per-proposal tally."""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from governance_ledger.domain.models import UserVote, VoteAggregate


@runtime_checkable
class VoteRepositoryProtocol(Protocol):
    """Protocol for UserVote rows and VoteAggregate rows."""

    @abstractmethod
    async def insert_vote(self, vote: UserVote) -> None:
        """Insert a vote guarded by the (proposal_id, voter_id) constraint.

        Raises:
            DuplicateVoteError: The voter already voted on the proposal.
        """
        ...

    @abstractmethod
    async def delete_vote(self, proposal_id: int, voter_id: str) -> bool:
        """Release a claimed (proposal_id, voter_id) slot.

        Only used when the external submission for a freshly inserted vote
        failed, before any tally increment.

        Returns:
            True if a row was removed.
        """
        ...

    @abstractmethod
    async def set_external_tx_hash(
        self, proposal_id: int, voter_id: str, tx_hash: str
    ) -> None:
        ...

    @abstractmethod
    async def get_vote(self, proposal_id: int, voter_id: str) -> UserVote | None:
        ...

    @abstractmethod
    async def list_votes(self, proposal_id: int) -> list[UserVote]:
        """All votes on a proposal, oldest first."""
        ...

    @abstractmethod
    async def list_votes_by_voter(self, voter_id: str) -> list[UserVote]:
        """All votes cast by a voter, newest first."""
        ...

    @abstractmethod
    async def ensure_aggregate(self, proposal_id: int) -> None:
        """Create a zero tally if absent. A duplicate create is not an error."""
        ...

    @abstractmethod
    async def get_aggregate(self, proposal_id: int) -> VoteAggregate | None:
        ...

    @abstractmethod
    async def increment_aggregate(
        self, proposal_id: int, support: bool, voting_power: int
    ) -> bool:
        """Add one voter and ``voting_power`` to the for or against side.

        Single atomic statement that also bumps ``version``.

        Returns:
            True if a row was affected.
        """
        ...

    @abstractmethod
    async def overwrite_aggregate(self, aggregate: VoteAggregate) -> VoteAggregate:
        """Replace the tally (reconciliation only), bumping ``version``."""
        ...
