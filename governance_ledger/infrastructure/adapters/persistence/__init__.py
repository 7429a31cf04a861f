"""PostgreSQL repositories (SQLAlchemy async, explicit SQL)."""

from governance_ledger.infrastructure.adapters.persistence.balance_repository import (
    PostgresBalanceRepository,
)
from governance_ledger.infrastructure.adapters.persistence.ledger_repository import (
    PostgresLedgerRepository,
)
from governance_ledger.infrastructure.adapters.persistence.proposal_repository import (
    PostgresProposalRepository,
)
from governance_ledger.infrastructure.adapters.persistence.vote_repository import (
    PostgresVoteRepository,
)

__all__ = [
    "PostgresBalanceRepository",
    "PostgresLedgerRepository",
    "PostgresProposalRepository",
    "PostgresVoteRepository",
]
