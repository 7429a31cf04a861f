"""Sequence synchronizer for externally numbered proposal ids.

The on-chain contract is the durable source of truth for proposal
numbering. This component keeps one in-memory counter,
``highest_confirmed_id``, guarded by a single lock:

- ``initialize()`` seeds the counter from the contract, falling back to 0
  (degraded mode) when the contract cannot be queried.
- ``reserve_next()`` returns ``highest_confirmed_id + 1`` without
  advancing; callers reserve once per in-flight creation attempt.
- ``confirm(id)`` moves the counter forward only.
- ``refresh()`` re-queries the contract and moves forward only.

Failed external submissions are simply never confirmed, which leaves a
gap. Gaps are acceptable; reused ids are not.

The counter is not persisted. After a restart it is re-derived from the
contract.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from structlog import get_logger

from governance_ledger.application.ports.external_authority import (
    ExternalAuthorityProtocol,
)
from governance_ledger.application.ports.time_authority import TimeAuthorityProtocol
from governance_ledger.domain.errors import (
    ExternalAuthorityUnavailableError,
    SequenceNotReadyError,
)
from governance_ledger.infrastructure.monitoring.metrics import LedgerMetrics

logger = get_logger(__name__)


class SequenceState(str, Enum):
    """Readiness of the synchronizer."""

    UNINITIALIZED = "UNINITIALIZED"
    READY = "READY"


@dataclass(frozen=True)
class SequenceStatus:
    """Point-in-time snapshot for operators.

    Attributes:
        state: Readiness.
        highest_confirmed_id: Current counter.
        next_id: What reserve_next() would return (None if not ready).
        degraded: True when the last initialize fell back to 0.
        last_synced_at: When the contract last answered successfully.
    """

    state: SequenceState
    highest_confirmed_id: int
    next_id: int | None
    degraded: bool
    last_synced_at: datetime | None

    def to_dict(self) -> dict[str, object]:
        return {
            "state": self.state.value,
            "highest_confirmed_id": self.highest_confirmed_id,
            "next_id": self.next_id,
            "degraded": self.degraded,
            "last_synced_at": self.last_synced_at.isoformat() if self.last_synced_at else None,
        }


class SequenceSynchronizer:
    """Reserves proposal ids in step with the external contract counter.

    Lock sections never await, so the same threading.Lock protects the
    counter from concurrent coroutines and from worker threads.
    """

    def __init__(
        self,
        authority: ExternalAuthorityProtocol,
        time_authority: TimeAuthorityProtocol,
        query_timeout_seconds: float = 10.0,
        metrics: LedgerMetrics | None = None,
    ) -> None:
        self._authority = authority
        self._time = time_authority
        self._query_timeout = query_timeout_seconds
        self._metrics = metrics
        self._lock = threading.Lock()
        self._state = SequenceState.UNINITIALIZED
        self._highest_confirmed_id = 0
        self._degraded = False
        self._last_synced_at: datetime | None = None

    @property
    def state(self) -> SequenceState:
        with self._lock:
            return self._state

    @property
    def highest_confirmed_id(self) -> int:
        with self._lock:
            return self._highest_confirmed_id

    @property
    def degraded(self) -> bool:
        with self._lock:
            return self._degraded

    async def initialize(self) -> int:
        """Seed the counter from the external authority.

        Never raises. On failure the counter starts at 0 and the
        synchronizer runs in degraded mode, where reserved ids may collide
        with ids already issued on chain.

        Returns:
            The counter value after initialization.
        """
        if self.state is SequenceState.READY:
            await self.refresh()
            return self.highest_confirmed_id

        log = logger.bind(component="sequence_synchronizer")
        highest = await self._query_highest_id()
        with self._lock:
            if highest is None:
                self._highest_confirmed_id = 0
                self._degraded = True
            else:
                self._highest_confirmed_id = highest
                self._degraded = False
                self._last_synced_at = self._time.now()
            self._state = SequenceState.READY
            value = self._highest_confirmed_id

        if highest is None:
            log.warning("sequence_degraded_mode", highest_confirmed_id=0)
        else:
            log.info("sequence_initialized", highest_confirmed_id=value)
        if self._metrics is not None:
            self._metrics.set_highest_confirmed_id(value)
        return value

    def reserve_next(self) -> int:
        """Return the next id to submit. Does not advance the counter.

        Raises:
            SequenceNotReadyError: initialize() has not run.
        """
        with self._lock:
            if self._state is not SequenceState.READY:
                raise SequenceNotReadyError()
            next_id = self._highest_confirmed_id + 1
        if self._metrics is not None:
            self._metrics.record_reservation()
        logger.debug("sequence_id_reserved", proposal_id=next_id)
        return next_id

    def confirm(self, proposal_id: int) -> bool:
        """Record that ``proposal_id`` is committed locally and on chain.

        Stale or repeated ids are no-ops.

        Returns:
            True if the counter advanced.
        """
        with self._lock:
            advanced = proposal_id > self._highest_confirmed_id
            if advanced:
                self._highest_confirmed_id = proposal_id
            current = self._highest_confirmed_id

        if advanced:
            logger.info("sequence_id_confirmed", proposal_id=proposal_id)
            if self._metrics is not None:
                self._metrics.record_confirmation(current)
        else:
            logger.warning(
                "sequence_stale_confirmation",
                proposal_id=proposal_id,
                highest_confirmed_id=current,
            )
        return advanced

    async def refresh(self) -> bool:
        """Re-query the external authority and move forward if it is ahead.

        Returns:
            True if the authority answered, False if the query failed.
        """
        highest = await self._query_highest_id()
        if highest is None:
            logger.warning("sequence_refresh_failed")
            return False

        with self._lock:
            previous = self._highest_confirmed_id
            if highest > previous:
                self._highest_confirmed_id = highest
            if self._state is SequenceState.UNINITIALIZED:
                self._state = SequenceState.READY
            self._degraded = False
            self._last_synced_at = self._time.now()
            current = self._highest_confirmed_id

        if highest < previous:
            logger.warning(
                "sequence_authority_behind_local",
                authority_highest_id=highest,
                highest_confirmed_id=previous,
            )
        logger.info("sequence_refreshed", previous=previous, highest_confirmed_id=current)
        if self._metrics is not None:
            self._metrics.set_highest_confirmed_id(current)
        return True

    def status(self) -> SequenceStatus:
        with self._lock:
            ready = self._state is SequenceState.READY
            return SequenceStatus(
                state=self._state,
                highest_confirmed_id=self._highest_confirmed_id,
                next_id=self._highest_confirmed_id + 1 if ready else None,
                degraded=self._degraded,
                last_synced_at=self._last_synced_at,
            )

    async def _query_highest_id(self) -> int | None:
        """Query the authority, mapping every failure mode to None."""
        try:
            value = await asyncio.wait_for(
                self._authority.query_highest_id(), self._query_timeout
            )
        except asyncio.TimeoutError:
            logger.warning("sequence_query_timed_out", timeout_seconds=self._query_timeout)
            return None
        except ExternalAuthorityUnavailableError as exc:
            logger.warning("sequence_query_failed", error=str(exc))
            return None
        except Exception as exc:
            # Synchronizer failures must never reach request handlers
            logger.error("sequence_query_error", error=str(exc), exc_info=True)
            return None

        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            logger.warning("sequence_query_malformed", value=repr(value))
            return None
        return value
