"""Transition executor: turns point intents into finalized ledger entries.

Every intent follows the same path:

1. Validate shape (positive amount, kind/source pairing). Rejections raise
   InvalidIntentError before anything is written.
2. For conversions and exchanges, capture the ratio in effect and compute
   the credited amount. A zero result is rejected before any write.
3. Insert the entry as PENDING.
4. Apply one conditional statement against the balance row.
5. Finalize the entry: CONFIRMED when the row was affected, FAILED when
   the balance was insufficient or the store raised.

Insufficient balance is never an exception; callers inspect ``status``.
Once the PENDING entry is stored, steps 4 and 5 run shielded from
cancellation so the entry always reaches a terminal status.

Usage:
    executor = TransitionExecutor(ledger_repo, balance_repo, time_authority)
    entry = await executor.execute(
        Intent(LedgerKind.MAIN_EARN, "user-1", 100, PointSource.MAIN_TASK_COMPLETION)
    )
    if entry.status is EntryStatus.FAILED:
        ...
"""

from __future__ import annotations

import asyncio
import threading

from structlog import get_logger

from governance_ledger.application.ports.balance_repository import (
    BalanceField,
    BalanceRepositoryProtocol,
)
from governance_ledger.application.ports.ledger_repository import (
    LedgerRepositoryProtocol,
)
from governance_ledger.application.ports.time_authority import TimeAuthorityProtocol
from governance_ledger.domain.errors import InvalidIntentError
from governance_ledger.domain.models import (
    ALLOWED_SOURCES,
    VOTE_SUBJECT_PREFIX,
    ConversionRatios,
    Intent,
    LedgerEntry,
    LedgerKind,
    PointSource,
)
from governance_ledger.infrastructure.monitoring.metrics import LedgerMetrics

logger = get_logger(__name__)

FAILURE_INSUFFICIENT_BALANCE = "insufficient_balance"
FAILURE_AGGREGATE_ERROR = "aggregate_error"


class TransitionExecutor:
    """Applies point intents to the ledger and the balance aggregate.

    Attributes:
        ratios: Conversion ratios used for new intents.
    """

    def __init__(
        self,
        ledger_repo: LedgerRepositoryProtocol,
        balance_repo: BalanceRepositoryProtocol,
        time_authority: TimeAuthorityProtocol,
        ratios: ConversionRatios | None = None,
        metrics: LedgerMetrics | None = None,
    ) -> None:
        self._ledger = ledger_repo
        self._balances = balance_repo
        self._time = time_authority
        self._ratios = ratios or ConversionRatios()
        self._ratios_lock = threading.Lock()
        self._metrics = metrics

    @property
    def ratios(self) -> ConversionRatios:
        with self._ratios_lock:
            return self._ratios

    def update_ratios(
        self, sub_to_main: int | None = None, main_to_token: int | None = None
    ) -> ConversionRatios:
        """Change ratios for future intents. Existing entries keep their ratio.

        Raises:
            InvalidRatioError: A value is outside [1, 100].
        """
        with self._ratios_lock:
            updated = ConversionRatios(
                sub_to_main=self._ratios.sub_to_main if sub_to_main is None else sub_to_main,
                main_to_token=(
                    self._ratios.main_to_token if main_to_token is None else main_to_token
                ),
            )
            self._ratios = updated
        logger.info(
            "conversion_ratios_updated",
            sub_to_main=updated.sub_to_main,
            main_to_token=updated.main_to_token,
        )
        return updated

    async def execute(self, intent: Intent) -> LedgerEntry:
        """Execute a point intent and return the finalized entry.

        Raises:
            InvalidIntentError: The intent is malformed; nothing was written.
        """
        entry = self._build_entry(intent)
        log = logger.bind(
            entry_id=str(entry.entry_id),
            subject_id=entry.subject_id,
            kind=entry.kind.value,
            amount=entry.amount,
        )

        await self._ledger.insert_pending(entry)
        log.debug("ledger_entry_pending")

        return await asyncio.shield(self._apply_and_finalize(entry))

    # Convenience entry points

    async def earn_main(
        self,
        subject_id: str,
        amount: int,
        source: PointSource = PointSource.MAIN_TASK_COMPLETION,
        description: str | None = None,
    ) -> LedgerEntry:
        return await self.execute(
            Intent(LedgerKind.MAIN_EARN, subject_id, amount, source, description)
        )

    async def earn_sub(
        self,
        subject_id: str,
        amount: int,
        source: PointSource = PointSource.SUB_TASK_COMPLETION,
        description: str | None = None,
    ) -> LedgerEntry:
        return await self.execute(
            Intent(LedgerKind.SUB_EARN, subject_id, amount, source, description)
        )

    async def spend_main(
        self, subject_id: str, amount: int, description: str | None = None
    ) -> LedgerEntry:
        return await self.execute(
            Intent(LedgerKind.MAIN_SPEND, subject_id, amount, None, description)
        )

    async def spend_sub(
        self, subject_id: str, amount: int, description: str | None = None
    ) -> LedgerEntry:
        return await self.execute(
            Intent(LedgerKind.SUB_SPEND, subject_id, amount, None, description)
        )

    async def convert_sub_to_main(
        self, subject_id: str, sub_amount: int, description: str | None = None
    ) -> LedgerEntry:
        return await self.execute(
            Intent(
                LedgerKind.SUB_TO_MAIN_CONVERSION, subject_id, sub_amount, None, description
            )
        )

    async def exchange_main_to_token(
        self, subject_id: str, main_amount: int, description: str | None = None
    ) -> LedgerEntry:
        return await self.execute(
            Intent(
                LedgerKind.MAIN_TO_TOKEN_EXCHANGE, subject_id, main_amount, None, description
            )
        )

    # Internals

    def _build_entry(self, intent: Intent) -> LedgerEntry:
        try:
            kind = LedgerKind(intent.kind)
        except ValueError:
            raise InvalidIntentError(
                "unknown_kind", f"Unknown intent kind: {intent.kind!r}"
            ) from None
        if kind is LedgerKind.VOTE_CAST:
            raise InvalidIntentError(
                "vote_not_supported", "Votes are cast through VoteService.cast_vote"
            )
        if not intent.subject_id:
            raise InvalidIntentError("missing_subject", "subject_id must not be empty")
        if intent.subject_id.startswith(VOTE_SUBJECT_PREFIX):
            raise InvalidIntentError(
                "reserved_subject",
                f"subject_id {intent.subject_id!r} is reserved for vote entries",
            )
        if isinstance(intent.amount, bool) or not isinstance(intent.amount, int):
            raise InvalidIntentError(
                "invalid_amount", f"amount must be an integer, got {intent.amount!r}"
            )
        if intent.amount <= 0:
            raise InvalidIntentError(
                "non_positive_amount", f"amount must be positive, got {intent.amount}"
            )

        allowed = ALLOWED_SOURCES[kind]
        if intent.source is None:
            source = allowed[0]
        else:
            try:
                source = PointSource(intent.source)
            except ValueError:
                raise InvalidIntentError(
                    "unknown_source", f"Unknown point source: {intent.source!r}"
                ) from None
        if source not in allowed:
            raise InvalidIntentError(
                "source_kind_mismatch",
                f"source {source.name} is not valid for {kind.value}",
            )

        ratio: int | None = None
        credited: int | None = None
        if kind.uses_ratio:
            ratios = self.ratios
            ratio = (
                ratios.sub_to_main
                if kind is LedgerKind.SUB_TO_MAIN_CONVERSION
                else ratios.main_to_token
            )
            credited = intent.amount // ratio
            if credited == 0:
                raise InvalidIntentError(
                    "zero_result",
                    f"{intent.amount} at ratio {ratio} yields nothing for {kind.value}",
                )

        return LedgerEntry(
            subject_id=intent.subject_id,
            kind=kind,
            amount=intent.amount,
            created_at=self._time.now(),
            source=source,
            ratio=ratio,
            credited_amount=credited,
            description=intent.description,
        )

    async def _apply_and_finalize(self, entry: LedgerEntry) -> LedgerEntry:
        log = logger.bind(
            entry_id=str(entry.entry_id),
            subject_id=entry.subject_id,
            kind=entry.kind.value,
        )
        try:
            applied = await self._apply(entry)
        except Exception as exc:
            log.error("aggregate_mutation_error", error=str(exc), exc_info=True)
            final = entry.failed(self._time.now(), FAILURE_AGGREGATE_ERROR)
        else:
            if applied:
                final = entry.confirmed(self._time.now())
            else:
                log.info("ledger_entry_insufficient_balance", amount=entry.amount)
                final = entry.failed(self._time.now(), FAILURE_INSUFFICIENT_BALANCE)

        await self._ledger.finalize(final)
        if self._metrics is not None:
            self._metrics.record_entry(final.kind.value, final.status.value)
        log.info(
            "ledger_entry_finalized",
            status=final.status.value,
            credited_amount=final.credited_amount,
        )
        return final

    async def _apply(self, entry: LedgerEntry) -> bool:
        subject_id = entry.subject_id
        kind = entry.kind
        await self._balances.ensure_exists(subject_id)

        if kind is LedgerKind.MAIN_EARN:
            return await self._balances.increment(
                subject_id, BalanceField.MAIN_POINT, entry.amount
            )
        if kind is LedgerKind.SUB_EARN:
            return await self._balances.increment(
                subject_id, BalanceField.SUB_POINT, entry.amount
            )
        if kind is LedgerKind.MAIN_SPEND:
            return await self._balances.decrement_if_sufficient(
                subject_id, BalanceField.MAIN_POINT, entry.amount
            )
        if kind is LedgerKind.SUB_SPEND:
            return await self._balances.decrement_if_sufficient(
                subject_id, BalanceField.SUB_POINT, entry.amount
            )
        if kind.uses_ratio and entry.credited_amount is None:
            raise InvalidIntentError(
                "missing_credit", f"{kind.value} entry has no credited amount"
            )
        if kind is LedgerKind.SUB_TO_MAIN_CONVERSION:
            return await self._balances.transfer_if_sufficient(
                subject_id,
                BalanceField.SUB_POINT,
                entry.amount,
                BalanceField.MAIN_POINT,
                entry.credited_amount,
            )
        if kind is LedgerKind.MAIN_TO_TOKEN_EXCHANGE:
            return await self._balances.transfer_if_sufficient(
                subject_id,
                BalanceField.MAIN_POINT,
                entry.amount,
                BalanceField.TOKEN_BALANCE,
                entry.credited_amount,
            )
        raise InvalidIntentError("unknown_kind", f"No transition for {kind.value}")
