"""Ledger transition errors.

Raised by the transition executor and the ledger store. Insufficient
balance is deliberately absent: it is recorded as a FAILED entry and
returned to the caller, never raised.
"""

from __future__ import annotations

from uuid import UUID

from governance_ledger.domain.exceptions import LedgerError


class InvalidIntentError(LedgerError):
    """Raised when an intent is malformed (HTTP 400).

    Nothing is persisted when this is raised.

    Attributes:
        reason: Short machine-readable reason.
    """

    problem_type = "urn:governance-ledger:intent:invalid"
    title = "Invalid Intent"
    status = 400

    def __init__(self, reason: str, detail: str | None = None) -> None:
        self.reason = reason
        self.detail = detail or reason
        super().__init__(f"Invalid intent: {self.detail}")

    def to_rfc7807_dict(self) -> dict:
        result = super().to_rfc7807_dict()
        result["detail"] = self.detail
        result["reason"] = self.reason
        return result


class InvalidRatioError(InvalidIntentError):
    """Raised when a conversion ratio falls outside the allowed bounds."""

    def __init__(self, name: str, value: int, lower: int, upper: int) -> None:
        self.name = name
        self.value = value
        super().__init__(
            reason="ratio_out_of_bounds",
            detail=f"{name} must be between {lower} and {upper}, got {value}",
        )


class AggregateUpdateFailedError(LedgerError):
    """Raised when an aggregate row could not be mutated after an entry was recorded.

    For votes this means the UserVote exists but the tally did not move.
    Operators repair the tally with the reconciler.
    """

    title = "Aggregate Update Failed"

    def __init__(self, aggregate: str, key: object, detail: str = "") -> None:
        self.aggregate = aggregate
        self.key = key
        suffix = f": {detail}" if detail else ""
        super().__init__(f"Failed to update {aggregate} aggregate for {key}{suffix}")


class LedgerEntryNotFoundError(LedgerError):
    """Raised when a ledger entry id is unknown."""

    title = "Ledger Entry Not Found"
    status = 404

    def __init__(self, entry_id: UUID) -> None:
        self.entry_id = entry_id
        super().__init__(f"Ledger entry {entry_id} not found")


class EntryAlreadyFinalizedError(LedgerError):
    """Raised when a terminal (CONFIRMED or FAILED) entry is transitioned again."""

    title = "Entry Already Finalized"
    status = 409

    def __init__(self, entry_id: UUID, entry_status: str) -> None:
        self.entry_id = entry_id
        self.entry_status = entry_status
        super().__init__(f"Ledger entry {entry_id} is already {entry_status}")
