"""Voting errors raised by the vote transition."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from governance_ledger.domain.exceptions import LedgerError


class DuplicateVoteError(LedgerError):
    """Raised when a voter tries to vote on the same proposal twice (HTTP 409).

    The (proposal_id, voter_id) uniqueness in the vote store is the final
    authority; the service pre-check only saves a round trip.

    Attributes:
        proposal_id: The proposal that was already voted on.
        voter_id: The voter attempting the duplicate vote.
        existing_vote_id: Id of the existing vote (if available).
        voted_at: When the existing vote was recorded (if available).
    """

    problem_type = "urn:governance-ledger:vote:duplicate"
    title = "Already Voted"
    status = 409

    def __init__(
        self,
        proposal_id: int,
        voter_id: str,
        existing_vote_id: UUID | None = None,
        voted_at: datetime | None = None,
    ) -> None:
        self.proposal_id = proposal_id
        self.voter_id = voter_id
        self.existing_vote_id = existing_vote_id
        self.voted_at = voted_at
        super().__init__(f"Voter {voter_id} already voted on proposal {proposal_id}")

    def to_rfc7807_dict(self) -> dict:
        result = super().to_rfc7807_dict()
        result["detail"] = (
            f"Voter {self.voter_id} has already voted on proposal {self.proposal_id}"
        )
        result["proposal_id"] = self.proposal_id
        result["voter_id"] = self.voter_id
        if self.existing_vote_id is not None:
            result["existing_vote_id"] = str(self.existing_vote_id)
        if self.voted_at is not None:
            result["voted_at"] = self.voted_at.isoformat()
        return result


class VotingClosedError(LedgerError):
    """Raised when a vote targets an executed, canceled or expired proposal."""

    problem_type = "urn:governance-ledger:vote:closed"
    title = "Voting Closed"
    status = 409

    def __init__(self, proposal_id: int, state: str) -> None:
        self.proposal_id = proposal_id
        self.state = state
        super().__init__(f"Voting is closed on proposal {proposal_id} ({state})")

    def to_rfc7807_dict(self) -> dict:
        result = super().to_rfc7807_dict()
        result["proposal_id"] = self.proposal_id
        result["state"] = self.state
        return result
