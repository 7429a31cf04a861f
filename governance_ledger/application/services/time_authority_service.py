"""Wall clock for production wiring."""

from __future__ import annotations

import time
from datetime import datetime, timezone

from governance_ledger.application.ports.time_authority import TimeAuthorityProtocol


class SystemTimeAuthority(TimeAuthorityProtocol):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()
