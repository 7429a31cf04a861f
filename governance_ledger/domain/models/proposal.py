"""Proposal domain model."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from governance_ledger.domain.errors import ProposalStateError


class ProposalStatus(str, Enum):
    """Derived status of a proposal at a point in time."""

    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    EXECUTED = "EXECUTED"
    CANCELED = "CANCELED"


@dataclass(frozen=True)
class Proposal:
    """A governance proposal.

    ``proposal_id`` is the value reserved from the sequence synchronizer and
    submitted to the chain; it is never generated by the store.
    ``executed`` and ``canceled`` are mutually exclusive terminal flags.
    """

    proposal_id: int
    description: str
    proposer_id: str
    deadline: datetime
    created_at: datetime
    executed: bool = False
    canceled: bool = False
    external_tx_hash: str | None = None

    def __post_init__(self) -> None:
        """Validate proposal invariants."""
        if self.proposal_id < 1:
            raise ValueError(f"proposal_id must be positive, got {self.proposal_id}")
        if self.executed and self.canceled:
            raise ValueError("proposal cannot be both executed and canceled")

    def can_vote(self, now: datetime) -> bool:
        return not self.executed and not self.canceled and now < self.deadline

    def status_at(self, now: datetime) -> ProposalStatus:
        if self.executed:
            return ProposalStatus.EXECUTED
        if self.canceled:
            return ProposalStatus.CANCELED
        if now >= self.deadline:
            return ProposalStatus.EXPIRED
        return ProposalStatus.ACTIVE

    def mark_executed(self) -> Proposal:
        """Return an executed copy.

        Raises:
            ProposalStateError: If the proposal was canceled.
        """
        if self.canceled:
            raise ProposalStateError(self.proposal_id, "CANCELED", "EXECUTED")
        return replace(self, executed=True)

    def mark_canceled(self) -> Proposal:
        """Return a canceled copy.

        Raises:
            ProposalStateError: If the proposal was executed.
        """
        if self.executed:
            raise ProposalStateError(self.proposal_id, "EXECUTED", "CANCELED")
        return replace(self, canceled=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "proposal_id": self.proposal_id,
            "description": self.description,
            "proposer_id": self.proposer_id,
            "deadline": self.deadline.isoformat(),
            "created_at": self.created_at.isoformat(),
            "executed": self.executed,
            "canceled": self.canceled,
            "external_tx_hash": self.external_tx_hash,
        }
