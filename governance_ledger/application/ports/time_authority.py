"""Clock port.

Ledger timestamps (created_at, confirmed_at, finalized_at), vote
deadlines and sequence sync times all come from one injected clock, so
tests can freeze it and deadline checks are deterministic.
"""

from abc import ABC, abstractmethod
from datetime import datetime


class TimeAuthorityProtocol(ABC):
    """Source of wall-clock and monotonic time.

    Production wiring uses SystemTimeAuthority; tests use
    tests.helpers.FakeTimeAuthority.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware UTC wall-clock time."""

    @abstractmethod
    def monotonic(self) -> float:
        """Seconds on a clock that never goes backwards. Compare, don't display."""
