"""Voting power provider port."""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol, runtime_checkable


@runtime_checkable
class VotingPowerProviderProtocol(Protocol):
    """Resolves how much voting power a voter holds right now."""

    @abstractmethod
    async def voting_power(self, voter_id: str) -> int:
        """Return voting power in the smallest unit (may be 0)."""
        ...
