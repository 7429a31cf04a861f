"""Base exception for the governance ledger domain layer."""

from __future__ import annotations


class LedgerError(Exception):
    """Base for every ledger, voting, proposal and external-authority error.

    Subclasses set ``problem_type``, ``title`` and ``status`` so any error
    can be rendered as RFC 7807 problem details; the ones callers act on
    extend ``to_rfc7807_dict`` with their own fields.
    """

    problem_type = "urn:governance-ledger:error"
    title = "Ledger Error"
    status = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)

    def to_rfc7807_dict(self) -> dict:
        return {
            "type": self.problem_type,
            "title": self.title,
            "status": self.status,
            "detail": str(self),
        }
