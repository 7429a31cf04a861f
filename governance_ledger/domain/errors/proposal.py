"""Proposal lifecycle errors."""

from __future__ import annotations

from governance_ledger.domain.exceptions import LedgerError


class ProposalNotFoundError(LedgerError):
    """Raised when a proposal id is unknown (HTTP 404)."""

    title = "Proposal Not Found"
    status = 404

    def __init__(self, proposal_id: int) -> None:
        self.proposal_id = proposal_id
        super().__init__(f"Proposal {proposal_id} not found")


class ProposalAlreadyExistsError(LedgerError):
    """Raised when a proposal id collides with an existing local proposal.

    Indicates the sequence synchronizer fell behind the chain; the
    proposal service refreshes it before surfacing this error.
    """

    title = "Proposal Already Exists"
    status = 409

    def __init__(self, proposal_id: int) -> None:
        self.proposal_id = proposal_id
        super().__init__(f"Proposal {proposal_id} already exists")


class ProposalStateError(LedgerError):
    """Raised when executing a canceled proposal or canceling an executed one."""

    title = "Invalid Proposal State"
    status = 409

    def __init__(self, proposal_id: int, current: str, requested: str) -> None:
        self.proposal_id = proposal_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Proposal {proposal_id} is {current}; cannot mark it {requested}"
        )
