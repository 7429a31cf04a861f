"""External authority port (on-chain governance contract).

Each call is a single attempt and may raise
ExternalAuthorityUnavailableError or hang; retries and timeouts are
applied by ExternalSubmissionService and the sequence synchronizer.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class ExternalAuthorityProtocol(Protocol):
    """Protocol for the blockchain gateway."""

    @abstractmethod
    async def submit_proposal(
        self, proposal_id: int, description: str, deadline: datetime
    ) -> str:
        """Create the proposal on chain with a caller-chosen id.

        Returns:
            Transaction hash.
        """
        ...

    @abstractmethod
    async def submit_vote(self, proposal_id: int, voter_id: str, support: bool) -> str:
        """Record a vote on chain.

        Returns:
            Transaction hash.
        """
        ...

    @abstractmethod
    async def query_highest_id(self) -> int:
        """Return the highest proposal id the contract has issued."""
        ...
