"""Errors for the external authority (on-chain contract) boundary."""

from __future__ import annotations

from governance_ledger.domain.exceptions import LedgerError


class ExternalAuthorityUnavailableError(LedgerError):
    """Raised by adapters when the external authority cannot be reached.

    A single attempt failed: transport error, timeout, non-2xx status or
    a malformed response body.
    """

    title = "External Authority Unavailable"
    status = 503

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        self.detail = detail
        suffix = f": {detail}" if detail else ""
        super().__init__(f"External authority unavailable during {operation}{suffix}")


class ExternalSubmissionError(LedgerError):
    """Raised when a submission to the external authority failed after all retries.

    No local state was committed for the submission. For proposals the
    reserved id is abandoned, leaving a gap.

    Attributes:
        operation: submit_proposal or submit_vote.
        attempts: Number of attempts made.
    """

    problem_type = "urn:governance-ledger:external:submission-failed"
    title = "External Submission Failed"
    status = 502

    def __init__(self, operation: str, attempts: int, detail: str = "") -> None:
        self.operation = operation
        self.attempts = attempts
        self.detail = detail
        super().__init__(
            f"External {operation} failed after {attempts} attempt(s)"
            + (f": {detail}" if detail else "")
        )

    def to_rfc7807_dict(self) -> dict:
        result = super().to_rfc7807_dict()
        result["operation"] = self.operation
        result["attempts"] = self.attempts
        return result


class SequenceNotReadyError(LedgerError):
    """Raised when an id is reserved before the synchronizer was initialized."""

    title = "Sequence Not Ready"
    status = 503

    def __init__(self) -> None:
        super().__init__("Sequence synchronizer has not been initialized")
