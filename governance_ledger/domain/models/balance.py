"""Per-user balance aggregate."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class BalanceAggregate:
    """Materialized point/token balance for one user.

    Only the transition executor and the reconciler change the stored row;
    this object is a read snapshot.
    """

    subject_id: str
    main_point: int = 0
    sub_point: int = 0
    token_balance: int = 0
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate non-negative counters."""
        for name in ("main_point", "sub_point", "token_balance"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")

    def same_counters(self, other: BalanceAggregate) -> bool:
        """Compare counters only, ignoring timestamps."""
        return (
            self.main_point == other.main_point
            and self.sub_point == other.sub_point
            and self.token_balance == other.token_balance
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject_id": self.subject_id,
            "main_point": self.main_point,
            "sub_point": self.sub_point,
            "token_balance": self.token_balance,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
