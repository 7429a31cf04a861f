"""Ledger entry domain model.

A ledger entry is the durable audit record of one attempted balance- or
vote-changing intent. Entries are created PENDING, then finalized exactly
once to CONFIRMED or FAILED; terminal entries never change again.

Amount semantics per kind:
- MAIN_EARN / SUB_EARN: amount credited to the main / sub balance.
- MAIN_SPEND / SUB_SPEND: amount debited from the main / sub balance.
- SUB_TO_MAIN_CONVERSION: amount of sub points debited; ``credited_amount``
  main points credited (``amount // ratio``).
- MAIN_TO_TOKEN_EXCHANGE: amount of main points debited; ``credited_amount``
  tokens credited (``amount // ratio``).
- VOTE_CAST: voting power (arbitrary precision) with ``support``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from uuid6 import uuid7

from governance_ledger.domain.errors import EntryAlreadyFinalizedError


class LedgerKind(str, Enum):
    """Closed set of intent kinds the transition executor understands."""

    MAIN_EARN = "MAIN_EARN"
    SUB_EARN = "SUB_EARN"
    MAIN_SPEND = "MAIN_SPEND"
    SUB_SPEND = "SUB_SPEND"
    SUB_TO_MAIN_CONVERSION = "SUB_TO_MAIN_CONVERSION"
    MAIN_TO_TOKEN_EXCHANGE = "MAIN_TO_TOKEN_EXCHANGE"
    VOTE_CAST = "VOTE_CAST"

    @property
    def is_point_kind(self) -> bool:
        return self is not LedgerKind.VOTE_CAST

    @property
    def uses_ratio(self) -> bool:
        return self in (
            LedgerKind.SUB_TO_MAIN_CONVERSION,
            LedgerKind.MAIN_TO_TOKEN_EXCHANGE,
        )


class PointType(str, Enum):
    """Which balance field a point source belongs to."""

    MAIN = "MAIN"
    SUB = "SUB"


class PointSource(int, Enum):
    """Origin code of a point movement.

    Codes are stable and persisted; never renumber them.
    """

    MAIN_TASK_COMPLETION = 1
    MAIN_EVENT_REWARD = 2
    MAIN_ADMIN_GRANT = 3
    MAIN_OTHERS_EARN = 4
    MAIN_EXCHANGE = 5
    MAIN_SPEND_OTHERS = 6
    SUB_TASK_COMPLETION = 7
    SUB_EVENT_REWARD = 8
    SUB_ADMIN_GRANT = 9
    SUB_OTHERS_EARN = 10
    SUB_CONVERSION = 11
    SUB_SPEND_OTHERS = 12

    @property
    def point_type(self) -> PointType:
        return PointType.MAIN if self.value <= 6 else PointType.SUB

    @classmethod
    def from_code(cls, code: int) -> PointSource:
        """Resolve a persisted source code.

        Raises:
            ValueError: If the code is unknown.
        """
        try:
            return cls(code)
        except ValueError:
            raise ValueError(f"Unknown point source code: {code}") from None


# Sources each point kind accepts. The first source is the default when
# an intent omits one.
ALLOWED_SOURCES: dict[LedgerKind, tuple[PointSource, ...]] = {
    LedgerKind.MAIN_EARN: (
        PointSource.MAIN_TASK_COMPLETION,
        PointSource.MAIN_EVENT_REWARD,
        PointSource.MAIN_ADMIN_GRANT,
        PointSource.MAIN_OTHERS_EARN,
    ),
    LedgerKind.SUB_EARN: (
        PointSource.SUB_TASK_COMPLETION,
        PointSource.SUB_EVENT_REWARD,
        PointSource.SUB_ADMIN_GRANT,
        PointSource.SUB_OTHERS_EARN,
    ),
    LedgerKind.MAIN_SPEND: (PointSource.MAIN_SPEND_OTHERS,),
    LedgerKind.SUB_SPEND: (PointSource.SUB_SPEND_OTHERS,),
    LedgerKind.SUB_TO_MAIN_CONVERSION: (PointSource.SUB_CONVERSION,),
    LedgerKind.MAIN_TO_TOKEN_EXCHANGE: (PointSource.MAIN_EXCHANGE,),
}

# VOTE_CAST entries are keyed by proposal, kept apart from user subject ids
VOTE_SUBJECT_PREFIX = "proposal:"


def vote_subject_id(proposal_id: int) -> str:
    return f"{VOTE_SUBJECT_PREFIX}{proposal_id}"


class EntryStatus(str, Enum):
    """Lifecycle status of a ledger entry."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not EntryStatus.PENDING


@dataclass(frozen=True)
class Intent:
    """A request to move points or record a vote.

    Shape validation happens in the transition executor so that a rejected
    intent never reaches the ledger store.
    """

    kind: LedgerKind
    subject_id: str
    amount: int
    source: PointSource | None = None
    description: str | None = None


@dataclass(frozen=True, eq=True)
class LedgerEntry:
    """Immutable snapshot of a ledger entry.

    Status changes produce a new snapshot via ``confirmed()`` / ``failed()``;
    the ledger store is responsible for making the transition durable.

    Attributes:
        entry_id: UUIDv7, time ordered.
        subject_id: Owning user id, or the proposal id for VOTE_CAST.
        kind: Intent kind.
        amount: Primary amount (see module docstring).
        status: Lifecycle status.
        created_at: When the PENDING entry was recorded (UTC).
        source: Point source for point kinds.
        support: Vote direction for VOTE_CAST.
        ratio: Ratio captured at intent time for conversions/exchanges.
        credited_amount: Destination amount for conversions/exchanges.
        description: Optional free text.
        confirmed_at: Set when CONFIRMED.
        finalized_at: Set on either terminal status.
        failure_reason: Set when FAILED.
    """

    subject_id: str
    kind: LedgerKind
    amount: int
    created_at: datetime
    status: EntryStatus = EntryStatus.PENDING
    source: PointSource | None = None
    support: bool | None = None
    ratio: int | None = None
    credited_amount: int | None = None
    description: str | None = None
    confirmed_at: datetime | None = None
    finalized_at: datetime | None = None
    failure_reason: str | None = None
    entry_id: UUID = field(default_factory=uuid7)

    def __post_init__(self) -> None:
        """Validate entry invariants."""
        if self.amount < 0:
            raise ValueError(f"amount must be non-negative, got {self.amount}")
        if self.kind.uses_ratio and (self.ratio is None or self.credited_amount is None):
            raise ValueError(f"{self.kind.value} entries require ratio and credited_amount")
        if self.kind is LedgerKind.VOTE_CAST and self.support is None:
            raise ValueError("VOTE_CAST entries require support")
        if self.status is EntryStatus.CONFIRMED and self.confirmed_at is None:
            raise ValueError("CONFIRMED entries require confirmed_at")

    @property
    def is_pending(self) -> bool:
        return self.status is EntryStatus.PENDING

    @property
    def main_earn_amount(self) -> int | None:
        return self.amount if self.kind is LedgerKind.MAIN_EARN else None

    @property
    def sub_earn_amount(self) -> int | None:
        return self.amount if self.kind is LedgerKind.SUB_EARN else None

    @property
    def main_exchanged_amount(self) -> int | None:
        """Main points leaving the main balance (exchange or spend)."""
        if self.kind in (LedgerKind.MAIN_TO_TOKEN_EXCHANGE, LedgerKind.MAIN_SPEND):
            return self.amount
        return None

    @property
    def sub_converted_amount(self) -> int | None:
        """Sub points leaving the sub balance (conversion or spend)."""
        if self.kind in (LedgerKind.SUB_TO_MAIN_CONVERSION, LedgerKind.SUB_SPEND):
            return self.amount
        return None

    @property
    def main_points_received(self) -> int:
        if self.kind is LedgerKind.SUB_TO_MAIN_CONVERSION:
            return self.credited_amount or 0
        return 0

    @property
    def tokens_received(self) -> int:
        if self.kind is LedgerKind.MAIN_TO_TOKEN_EXCHANGE:
            return self.credited_amount or 0
        return 0

    def confirmed(self, at: datetime) -> LedgerEntry:
        """Return a CONFIRMED copy of this PENDING entry."""
        self._require_pending()
        return replace(
            self, status=EntryStatus.CONFIRMED, confirmed_at=at, finalized_at=at
        )

    def failed(self, at: datetime, reason: str) -> LedgerEntry:
        """Return a FAILED copy of this PENDING entry."""
        self._require_pending()
        return replace(
            self, status=EntryStatus.FAILED, finalized_at=at, failure_reason=reason
        )

    def _require_pending(self) -> None:
        if not self.is_pending:
            raise EntryAlreadyFinalizedError(self.entry_id, self.status.value)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging and CLI output."""
        return {
            "entry_id": str(self.entry_id),
            "subject_id": self.subject_id,
            "kind": self.kind.value,
            "amount": str(self.amount),
            "status": self.status.value,
            "source": self.source.name if self.source is not None else None,
            "support": self.support,
            "ratio": self.ratio,
            "credited_amount": self.credited_amount,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
            "confirmed_at": self.confirmed_at.isoformat() if self.confirmed_at else None,
            "failure_reason": self.failure_reason,
        }
