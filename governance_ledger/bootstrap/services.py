"""Service wiring for the PostgreSQL-backed ledger."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from governance_ledger.application.ports.external_authority import (
    ExternalAuthorityProtocol,
)
from governance_ledger.application.ports.time_authority import TimeAuthorityProtocol
from governance_ledger.application.services import (
    ExternalSubmissionService,
    LedgerQueryService,
    ProposalService,
    ReconciliationService,
    SequenceSynchronizer,
    SystemTimeAuthority,
    TokenBalanceVotingPowerProvider,
    TransitionExecutor,
    VoteService,
)
from governance_ledger.config.ledger_config import ChainGatewayConfig, LedgerConfig
from governance_ledger.infrastructure.adapters.external import ChainGatewayClient
from governance_ledger.infrastructure.adapters.persistence import (
    PostgresBalanceRepository,
    PostgresLedgerRepository,
    PostgresProposalRepository,
    PostgresVoteRepository,
)
from governance_ledger.infrastructure.monitoring import get_ledger_metrics


@dataclass(frozen=True)
class LedgerServices:
    """Every service of the engine, sharing one set of repositories."""

    executor: TransitionExecutor
    votes: VoteService
    proposals: ProposalService
    reconciliation: ReconciliationService
    synchronizer: SequenceSynchronizer
    queries: LedgerQueryService
    authority: ExternalAuthorityProtocol


def build_ledger_services(
    session_factory: async_sessionmaker[AsyncSession],
    ledger_config: LedgerConfig | None = None,
    gateway_config: ChainGatewayConfig | None = None,
    authority: ExternalAuthorityProtocol | None = None,
    time_authority: TimeAuthorityProtocol | None = None,
) -> LedgerServices:
    """Wire services over PostgreSQL repositories.

    The synchronizer is returned uninitialized; await
    ``services.synchronizer.initialize()`` before creating proposals.
    """
    ledger_config = ledger_config or LedgerConfig.from_environment()
    gateway_config = gateway_config or ChainGatewayConfig.from_environment()
    authority = authority or ChainGatewayClient(gateway_config)
    time_authority = time_authority or SystemTimeAuthority()
    metrics = get_ledger_metrics()

    ledger_repo = PostgresLedgerRepository(session_factory)
    balance_repo = PostgresBalanceRepository(session_factory)
    vote_repo = PostgresVoteRepository(session_factory)
    proposal_repo = PostgresProposalRepository(session_factory)

    submission = ExternalSubmissionService(authority, gateway_config, metrics)
    synchronizer = SequenceSynchronizer(
        authority,
        time_authority,
        query_timeout_seconds=gateway_config.timeout_seconds,
        metrics=metrics,
    )

    return LedgerServices(
        executor=TransitionExecutor(
            ledger_repo, balance_repo, time_authority, ledger_config.ratios, metrics
        ),
        votes=VoteService(
            proposal_repo,
            vote_repo,
            ledger_repo,
            time_authority,
            TokenBalanceVotingPowerProvider(balance_repo, ledger_config.token_decimals),
            submission,
            metrics,
        ),
        proposals=ProposalService(
            proposal_repo, vote_repo, synchronizer, submission, time_authority
        ),
        reconciliation=ReconciliationService(
            ledger_repo, balance_repo, vote_repo, proposal_repo, metrics
        ),
        synchronizer=synchronizer,
        queries=LedgerQueryService(ledger_repo, balance_repo),
        authority=authority,
    )
