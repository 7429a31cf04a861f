"""Reconciliation: rebuild aggregates from their source records.

Balances are rebuilt from CONFIRMED ledger entries:

    main_point    = MAIN_EARN + conversion credits - MAIN_TO_TOKEN_EXCHANGE - MAIN_SPEND
    sub_point     = SUB_EARN - SUB_TO_MAIN_CONVERSION - SUB_SPEND
    token_balance = exchange credits

Vote tallies are rebuilt from UserVote rows. Each rebuild overwrites the
aggregate in a single statement and is idempotent. Operators run it from
the CLI; nothing schedules it automatically.
"""

from __future__ import annotations

from dataclasses import dataclass

from structlog import get_logger

from governance_ledger.application.ports.balance_repository import (
    BalanceRepositoryProtocol,
)
from governance_ledger.application.ports.ledger_repository import (
    LedgerRepositoryProtocol,
)
from governance_ledger.application.ports.proposal_repository import (
    ProposalRepositoryProtocol,
)
from governance_ledger.application.ports.vote_repository import VoteRepositoryProtocol
from governance_ledger.domain.errors import (
    AggregateUpdateFailedError,
    ProposalNotFoundError,
)
from governance_ledger.domain.models import BalanceAggregate, LedgerKind, VoteAggregate
from governance_ledger.infrastructure.monitoring.metrics import LedgerMetrics

logger = get_logger(__name__)


@dataclass(frozen=True)
class BalanceReconciliation:
    """Stored vs. ledger-derived balance for one subject."""

    subject_id: str
    stored: BalanceAggregate | None
    expected: BalanceAggregate

    @property
    def is_consistent(self) -> bool:
        return self.stored is not None and self.stored.same_counters(self.expected)


@dataclass(frozen=True)
class VoteReconciliation:
    """Stored vs. vote-derived tally for one proposal."""

    proposal_id: int
    stored: VoteAggregate | None
    expected: VoteAggregate

    @property
    def is_consistent(self) -> bool:
        return self.stored is not None and self.stored.same_tally(self.expected)


class ReconciliationService:
    """Verifies and repairs balance and vote aggregates."""

    def __init__(
        self,
        ledger_repo: LedgerRepositoryProtocol,
        balance_repo: BalanceRepositoryProtocol,
        vote_repo: VoteRepositoryProtocol,
        proposal_repo: ProposalRepositoryProtocol,
        metrics: LedgerMetrics | None = None,
    ) -> None:
        self._ledger = ledger_repo
        self._balances = balance_repo
        self._votes = vote_repo
        self._proposals = proposal_repo
        self._metrics = metrics

    async def expected_balance(self, subject_id: str) -> BalanceAggregate:
        """Compute a subject's balance from CONFIRMED entries.

        Raises:
            AggregateUpdateFailedError: The entries sum to a negative counter.
        """
        totals = await self._ledger.confirmed_totals(subject_id)
        main_point = (
            totals.amount(LedgerKind.MAIN_EARN)
            + totals.credit(LedgerKind.SUB_TO_MAIN_CONVERSION)
            - totals.amount(LedgerKind.MAIN_TO_TOKEN_EXCHANGE)
            - totals.amount(LedgerKind.MAIN_SPEND)
        )
        sub_point = (
            totals.amount(LedgerKind.SUB_EARN)
            - totals.amount(LedgerKind.SUB_TO_MAIN_CONVERSION)
            - totals.amount(LedgerKind.SUB_SPEND)
        )
        token_balance = totals.credit(LedgerKind.MAIN_TO_TOKEN_EXCHANGE)

        if main_point < 0 or sub_point < 0 or token_balance < 0:
            logger.error(
                "ledger_totals_negative",
                subject_id=subject_id,
                main_point=main_point,
                sub_point=sub_point,
                token_balance=token_balance,
            )
            raise AggregateUpdateFailedError(
                "balance", subject_id, "confirmed entries sum to a negative balance"
            )
        return BalanceAggregate(
            subject_id=subject_id,
            main_point=main_point,
            sub_point=sub_point,
            token_balance=token_balance,
        )

    async def verify(self, subject_id: str) -> BalanceReconciliation:
        """Compare a stored balance with the ledger without changing it."""
        expected = await self.expected_balance(subject_id)
        stored = await self._balances.get(subject_id)
        result = BalanceReconciliation(subject_id, stored, expected)
        if not result.is_consistent:
            logger.warning(
                "balance_drift_detected",
                subject_id=subject_id,
                stored=stored.to_dict() if stored else None,
                expected=expected.to_dict(),
            )
        return result

    async def recompute(self, subject_id: str) -> BalanceAggregate:
        """Overwrite a subject's balance with the ledger-derived value."""
        result = await self.verify(subject_id)
        if not result.is_consistent and self._metrics is not None:
            self._metrics.record_drift("balance")
        stored = await self._balances.overwrite(result.expected)
        logger.info(
            "balance_reconciled",
            subject_id=subject_id,
            drifted=not result.is_consistent,
            main_point=stored.main_point,
            sub_point=stored.sub_point,
            token_balance=stored.token_balance,
        )
        return stored

    async def verify_proposal(self, proposal_id: int) -> VoteReconciliation:
        """Compare a stored tally with the votes without changing it.

        Raises:
            ProposalNotFoundError: Unknown proposal.
        """
        if await self._proposals.get(proposal_id) is None:
            raise ProposalNotFoundError(proposal_id)
        votes = await self._votes.list_votes(proposal_id)
        expected = VoteAggregate.from_votes(proposal_id, votes)
        stored = await self._votes.get_aggregate(proposal_id)
        result = VoteReconciliation(proposal_id, stored, expected)
        if not result.is_consistent:
            logger.warning(
                "vote_tally_drift_detected",
                proposal_id=proposal_id,
                stored=stored.to_dict() if stored else None,
                expected=expected.to_dict(),
            )
        return result

    async def recompute_proposal(self, proposal_id: int) -> VoteAggregate:
        """Overwrite a proposal's tally with the vote-derived value."""
        result = await self.verify_proposal(proposal_id)
        if not result.is_consistent and self._metrics is not None:
            self._metrics.record_drift("vote")
        stored = await self._votes.overwrite_aggregate(result.expected)
        logger.info(
            "vote_tally_reconciled",
            proposal_id=proposal_id,
            drifted=not result.is_consistent,
            total_voters=stored.total_voters,
            version=stored.version,
        )
        return stored

    async def recompute_all(self) -> list[BalanceAggregate]:
        """Reconcile every subject with a balance row or a point entry."""
        subject_ids = sorted(
            set(await self._balances.list_subject_ids())
            | set(await self._ledger.list_point_subjects())
        )
        log = logger.bind(batch_size=len(subject_ids))
        log.info("balance_batch_reconciliation_started")
        results = [await self.recompute(subject_id) for subject_id in subject_ids]
        log.info("balance_batch_reconciliation_completed")
        return results

    async def recompute_all_proposals(self) -> list[VoteAggregate]:
        """Reconcile every proposal's tally."""
        proposal_ids = await self._proposals.list_ids()
        log = logger.bind(batch_size=len(proposal_ids))
        log.info("vote_batch_reconciliation_started")
        results = [await self.recompute_proposal(pid) for pid in proposal_ids]
        log.info("vote_batch_reconciliation_completed")
        return results
