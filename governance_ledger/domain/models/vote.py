"""Vote domain models: individual votes and the per-proposal tally."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any
from uuid import UUID

from uuid6 import uuid7

_HUNDRED = Decimal(100)
_TWO_PLACES = Decimal("0.01")


@dataclass(frozen=True)
class UserVote:
    """One voter's vote on one proposal.

    Votes are immutable once stored: they cannot be changed or retracted.
    At most one exists per (proposal_id, voter_id).
    """

    proposal_id: int
    voter_id: str
    support: bool
    voting_power: int
    voted_at: datetime
    external_tx_hash: str | None = None
    vote_id: UUID = field(default_factory=uuid7)

    def __post_init__(self) -> None:
        """Validate vote invariants."""
        if self.voting_power <= 0:
            raise ValueError(f"voting_power must be positive, got {self.voting_power}")
        if not self.voter_id:
            raise ValueError("voter_id must not be empty")

    def to_dict(self) -> dict[str, Any]:
        return {
            "vote_id": str(self.vote_id),
            "proposal_id": self.proposal_id,
            "voter_id": self.voter_id,
            "support": self.support,
            "voting_power": str(self.voting_power),
            "voted_at": self.voted_at.isoformat(),
            "external_tx_hash": self.external_tx_hash,
        }


@dataclass(frozen=True)
class VoteAggregate:
    """Materialized vote tally for a proposal.

    ``version`` is bumped on every mutation. Increments are blind atomic
    updates, so the version is an audit counter and is never compared.
    """

    proposal_id: int
    for_votes: int = 0
    against_votes: int = 0
    total_voters: int = 0
    for_voters: int = 0
    against_voters: int = 0
    version: int = 0
    last_updated: datetime | None = None

    def __post_init__(self) -> None:
        """Validate tally invariants."""
        for name in (
            "for_votes",
            "against_votes",
            "total_voters",
            "for_voters",
            "against_voters",
        ):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        if self.total_voters != self.for_voters + self.against_voters:
            raise ValueError(
                f"total_voters ({self.total_voters}) must equal for_voters "
                f"({self.for_voters}) + against_voters ({self.against_voters})"
            )

    @classmethod
    def from_votes(cls, proposal_id: int, votes: list[UserVote]) -> VoteAggregate:
        """Build a tally from individual votes (version left at 0)."""
        for_votes = sum(v.voting_power for v in votes if v.support)
        against_votes = sum(v.voting_power for v in votes if not v.support)
        for_voters = sum(1 for v in votes if v.support)
        against_voters = len(votes) - for_voters
        return cls(
            proposal_id=proposal_id,
            for_votes=for_votes,
            against_votes=against_votes,
            total_voters=len(votes),
            for_voters=for_voters,
            against_voters=against_voters,
        )

    @property
    def total_votes(self) -> int:
        return self.for_votes + self.against_votes

    @property
    def has_any_votes(self) -> bool:
        return self.total_voters > 0

    @property
    def for_percentage(self) -> Decimal:
        """Share of voting power in favour, 0-100 with two decimals (half up)."""
        if self.total_votes == 0:
            return Decimal("0.00")
        ratio = Decimal(self.for_votes) * _HUNDRED / Decimal(self.total_votes)
        return ratio.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)

    @property
    def against_percentage(self) -> Decimal:
        if self.total_votes == 0:
            return Decimal("0.00")
        return _HUNDRED - self.for_percentage

    @property
    def is_passed(self) -> bool:
        return self.for_votes > self.against_votes

    @property
    def is_tied(self) -> bool:
        return self.for_votes == self.against_votes

    def same_tally(self, other: VoteAggregate) -> bool:
        """Compare counts only, ignoring version and timestamps."""
        return (
            self.for_votes == other.for_votes
            and self.against_votes == other.against_votes
            and self.total_voters == other.total_voters
            and self.for_voters == other.for_voters
            and self.against_voters == other.against_voters
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "proposal_id": self.proposal_id,
            "for_votes": str(self.for_votes),
            "against_votes": str(self.against_votes),
            "total_voters": self.total_voters,
            "for_voters": self.for_voters,
            "against_voters": self.against_voters,
            "version": self.version,
            "for_percentage": str(self.for_percentage),
            "is_passed": self.is_passed,
        }
