"""Domain models for the governance ledger."""

from governance_ledger.domain.models.balance import BalanceAggregate
from governance_ledger.domain.models.conversion import (
    MAX_RATIO,
    MIN_RATIO,
    ConversionRatios,
)
from governance_ledger.domain.models.ledger_entry import (
    ALLOWED_SOURCES,
    VOTE_SUBJECT_PREFIX,
    EntryStatus,
    Intent,
    LedgerEntry,
    LedgerKind,
    PointSource,
    PointType,
    vote_subject_id,
)
from governance_ledger.domain.models.proposal import Proposal, ProposalStatus
from governance_ledger.domain.models.vote import UserVote, VoteAggregate

__all__ = [
    "ALLOWED_SOURCES",
    "BalanceAggregate",
    "ConversionRatios",
    "EntryStatus",
    "Intent",
    "LedgerEntry",
    "LedgerKind",
    "MAX_RATIO",
    "MIN_RATIO",
    "PointSource",
    "PointType",
    "Proposal",
    "ProposalStatus",
    "UserVote",
    "VOTE_SUBJECT_PREFIX",
    "VoteAggregate",
    "vote_subject_id",
]
