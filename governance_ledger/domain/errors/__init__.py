"""Domain errors for the governance ledger."""

from governance_ledger.domain.errors.external import (
    ExternalAuthorityUnavailableError,
    ExternalSubmissionError,
    SequenceNotReadyError,
)
from governance_ledger.domain.errors.ledger import (
    AggregateUpdateFailedError,
    EntryAlreadyFinalizedError,
    InvalidIntentError,
    InvalidRatioError,
    LedgerEntryNotFoundError,
)
from governance_ledger.domain.errors.proposal import (
    ProposalAlreadyExistsError,
    ProposalNotFoundError,
    ProposalStateError,
)
from governance_ledger.domain.errors.voting import (
    DuplicateVoteError,
    VotingClosedError,
)

__all__ = [
    "AggregateUpdateFailedError",
    "DuplicateVoteError",
    "EntryAlreadyFinalizedError",
    "ExternalAuthorityUnavailableError",
    "ExternalSubmissionError",
    "InvalidIntentError",
    "InvalidRatioError",
    "LedgerEntryNotFoundError",
    "ProposalAlreadyExistsError",
    "ProposalNotFoundError",
    "ProposalStateError",
    "SequenceNotReadyError",
    "VotingClosedError",
]
