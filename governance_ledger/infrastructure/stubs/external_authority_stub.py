"""In-memory stub for ExternalAuthorityProtocol.

Behaves like a contract that assigns nothing itself: it accepts the
caller's proposal id and remembers the highest one. Failures and delays
can be scripted per operation.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime

from governance_ledger.domain.errors import ExternalAuthorityUnavailableError


@dataclass(frozen=True)
class SubmittedProposal:
    proposal_id: int
    description: str
    deadline: datetime
    tx_hash: str


@dataclass(frozen=True)
class SubmittedVote:
    proposal_id: int
    voter_id: str
    support: bool
    tx_hash: str


class ExternalAuthorityStub:
    """Scriptable fake chain gateway."""

    def __init__(self, highest_id: int = 0) -> None:
        """Initialize the stub.

        Args:
            highest_id: Value returned by query_highest_id.
        """
        self.highest_id = highest_id
        self.proposals: list[SubmittedProposal] = []
        self.votes: list[SubmittedVote] = []
        self.calls: dict[str, int] = {
            "submit_proposal": 0,
            "submit_vote": 0,
            "query_highest_id": 0,
        }
        self._failures: dict[str, int] = {}
        self._delay: dict[str, float] = {}
        self._query_result: object | None = None

    def fail_next(self, operation: str, times: int = 1) -> None:
        """Make the next ``times`` calls of ``operation`` raise."""
        self._failures[operation] = self._failures.get(operation, 0) + times

    def fail_always(self, operation: str) -> None:
        self._failures[operation] = 10**9

    def clear_failures(self) -> None:
        self._failures.clear()

    def set_delay(self, operation: str, seconds: float) -> None:
        """Sleep before answering ``operation`` (to trigger timeouts)."""
        self._delay[operation] = seconds

    def return_malformed_highest_id(self, value: object) -> None:
        """Make query_highest_id return a non-integer value."""
        self._query_result = value

    async def _enter(self, operation: str) -> None:
        self.calls[operation] += 1
        delay = self._delay.get(operation, 0.0)
        if delay:
            await asyncio.sleep(delay)
        remaining = self._failures.get(operation, 0)
        if remaining > 0:
            self._failures[operation] = remaining - 1
            raise ExternalAuthorityUnavailableError(operation, "scripted failure")

    async def submit_proposal(
        self, proposal_id: int, description: str, deadline: datetime
    ) -> str:
        await self._enter("submit_proposal")
        tx_hash = f"0xproposal{proposal_id:060d}"
        self.proposals.append(
            SubmittedProposal(proposal_id, description, deadline, tx_hash)
        )
        self.highest_id = max(self.highest_id, proposal_id)
        return tx_hash

    async def submit_vote(self, proposal_id: int, voter_id: str, support: bool) -> str:
        await self._enter("submit_vote")
        tx_hash = f"0xvote{len(self.votes) + 1:064d}"
        self.votes.append(SubmittedVote(proposal_id, voter_id, support, tx_hash))
        return tx_hash

    async def query_highest_id(self) -> int:
        await self._enter("query_highest_id")
        if self._query_result is not None:
            return self._query_result  # type: ignore[return-value]
        return self.highest_id
