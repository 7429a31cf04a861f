"""Bounded-retry wrapper around the external authority.

Each attempt is bounded by ``timeout_seconds``; failed attempts are
retried up to ``max_attempts`` with a fixed ``backoff_seconds`` delay.
When attempts run out the caller gets ExternalSubmissionError and must
treat the operation as failed: no sequence confirmation, no CONFIRMED
ledger entry.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime

from structlog import get_logger

from governance_ledger.application.ports.external_authority import (
    ExternalAuthorityProtocol,
)
from governance_ledger.config.ledger_config import ChainGatewayConfig
from governance_ledger.domain.errors import (
    ExternalAuthorityUnavailableError,
    ExternalSubmissionError,
)
from governance_ledger.infrastructure.monitoring.metrics import LedgerMetrics

logger = get_logger(__name__)


class ExternalSubmissionService:
    """Submits proposals and votes with bounded retries and timeouts."""

    def __init__(
        self,
        authority: ExternalAuthorityProtocol,
        config: ChainGatewayConfig,
        metrics: LedgerMetrics | None = None,
    ) -> None:
        self._authority = authority
        self._config = config
        self._metrics = metrics

    async def submit_proposal(
        self, proposal_id: int, description: str, deadline: datetime
    ) -> str:
        """Submit a proposal with the reserved id.

        Returns:
            Transaction hash.

        Raises:
            ExternalSubmissionError: All attempts failed or timed out.
        """
        return await self._with_retries(
            "submit_proposal",
            lambda: self._authority.submit_proposal(proposal_id, description, deadline),
            proposal_id=proposal_id,
        )

    async def submit_vote(self, proposal_id: int, voter_id: str, support: bool) -> str:
        """Submit a vote.

        Raises:
            ExternalSubmissionError: All attempts failed or timed out.
        """
        return await self._with_retries(
            "submit_vote",
            lambda: self._authority.submit_vote(proposal_id, voter_id, support),
            proposal_id=proposal_id,
            voter_id=voter_id,
        )

    async def _with_retries(
        self,
        operation: str,
        call: Callable[[], Awaitable[str]],
        **context: object,
    ) -> str:
        log = logger.bind(operation=operation, **context)
        max_attempts = self._config.max_attempts
        last_error = ""

        for attempt in range(1, max_attempts + 1):
            try:
                tx_hash = await asyncio.wait_for(call(), self._config.timeout_seconds)
            except asyncio.TimeoutError:
                last_error = f"timed out after {self._config.timeout_seconds}s"
                log.warning("external_attempt_timed_out", attempt=attempt)
            except ExternalAuthorityUnavailableError as exc:
                last_error = str(exc)
                log.warning("external_attempt_failed", attempt=attempt, error=last_error)
            else:
                log.info("external_submission_succeeded", attempt=attempt, tx_hash=tx_hash)
                return tx_hash

            if attempt < max_attempts and self._config.backoff_seconds > 0:
                await asyncio.sleep(self._config.backoff_seconds)

        if self._metrics is not None:
            self._metrics.record_external_failure(operation)
        log.error("external_submission_exhausted", attempts=max_attempts, error=last_error)
        raise ExternalSubmissionError(operation, max_attempts, last_error)
