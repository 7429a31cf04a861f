"""Application services."""

from governance_ledger.application.services.external_submission_service import (
    ExternalSubmissionService,
)
from governance_ledger.application.services.ledger_query_service import (
    LedgerQueryService,
    UserLedgerStatistics,
)
from governance_ledger.application.services.proposal_service import ProposalService
from governance_ledger.application.services.reconciliation_service import (
    BalanceReconciliation,
    ReconciliationService,
    VoteReconciliation,
)
from governance_ledger.application.services.sequence_synchronizer import (
    SequenceState,
    SequenceStatus,
    SequenceSynchronizer,
)
from governance_ledger.application.services.time_authority_service import (
    SystemTimeAuthority,
)
from governance_ledger.application.services.transition_executor import (
    TransitionExecutor,
)
from governance_ledger.application.services.vote_service import VoteService
from governance_ledger.application.services.voting_power_service import (
    TokenBalanceVotingPowerProvider,
)

__all__ = [
    "BalanceReconciliation",
    "ExternalSubmissionService",
    "LedgerQueryService",
    "ProposalService",
    "ReconciliationService",
    "SequenceState",
    "SequenceStatus",
    "SequenceSynchronizer",
    "SystemTimeAuthority",
    "TokenBalanceVotingPowerProvider",
    "TransitionExecutor",
    "UserLedgerStatistics",
    "VoteReconciliation",
    "VoteService",
]
