"""Proposal store port."""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from governance_ledger.domain.models import Proposal


@runtime_checkable
class ProposalRepositoryProtocol(Protocol):
    """Protocol for proposal persistence. Ids come from the caller."""

    @abstractmethod
    async def insert(self, proposal: Proposal) -> None:
        """Store a new proposal.

        Raises:
            ProposalAlreadyExistsError: The id is already taken.
        """
        ...

    @abstractmethod
    async def get(self, proposal_id: int) -> Proposal | None:
        ...

    @abstractmethod
    async def set_executed(self, proposal_id: int) -> bool:
        """Set ``executed`` iff the proposal is not canceled.

        Returns:
            True if the row now has ``executed`` set.
        """
        ...

    @abstractmethod
    async def set_canceled(self, proposal_id: int) -> bool:
        """Set ``canceled`` iff the proposal is not executed.

        Returns:
            True if the row now has ``canceled`` set.
        """
        ...

    @abstractmethod
    async def list_ids(self) -> list[int]:
        """All proposal ids, ascending."""
        ...
