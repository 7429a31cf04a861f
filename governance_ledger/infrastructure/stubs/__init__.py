"""In-memory stubs of the application ports, used by tests and local runs."""

from governance_ledger.infrastructure.stubs.balance_repository_stub import (
    BalanceRepositoryStub,
)
from governance_ledger.infrastructure.stubs.external_authority_stub import (
    ExternalAuthorityStub,
)
from governance_ledger.infrastructure.stubs.ledger_repository_stub import (
    LedgerRepositoryStub,
)
from governance_ledger.infrastructure.stubs.proposal_repository_stub import (
    ProposalRepositoryStub,
)
from governance_ledger.infrastructure.stubs.vote_repository_stub import (
    VoteRepositoryStub,
)

__all__ = [
    "BalanceRepositoryStub",
    "ExternalAuthorityStub",
    "LedgerRepositoryStub",
    "ProposalRepositoryStub",
    "VoteRepositoryStub",
]
