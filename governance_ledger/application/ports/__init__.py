"""Application ports (interfaces implemented by infrastructure)."""

from governance_ledger.application.ports.balance_repository import (
    BalanceField,
    BalanceRepositoryProtocol,
)
from governance_ledger.application.ports.external_authority import (
    ExternalAuthorityProtocol,
)
from governance_ledger.application.ports.ledger_repository import (
    LedgerQuery,
    LedgerRepositoryProtocol,
    LedgerTotals,
)
from governance_ledger.application.ports.proposal_repository import (
    ProposalRepositoryProtocol,
)
from governance_ledger.application.ports.time_authority import TimeAuthorityProtocol
from governance_ledger.application.ports.vote_repository import VoteRepositoryProtocol
from governance_ledger.application.ports.voting_power import (
    VotingPowerProviderProtocol,
)

__all__ = [
    "BalanceField",
    "BalanceRepositoryProtocol",
    "ExternalAuthorityProtocol",
    "LedgerQuery",
    "LedgerRepositoryProtocol",
    "LedgerTotals",
    "ProposalRepositoryProtocol",
    "TimeAuthorityProtocol",
    "VoteRepositoryProtocol",
    "VotingPowerProviderProtocol",
]
