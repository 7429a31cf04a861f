"""Test helpers for governance ledger tests.

Helpers:
    FakeTimeAuthority: Controllable time authority for deterministic tests
    make_proposal: Proposal factory anchored at START_TIME
    sample_total: Read a metric value from an isolated registry

Usage:
    from tests.helpers import FakeTimeAuthority
"""

from tests.helpers.factories import ONE_DAY_LATER, START_TIME, make_proposal
from tests.helpers.fake_time_authority import FakeTimeAuthority
from tests.helpers.metrics import sample_total

__all__ = [
    "FakeTimeAuthority",
    "ONE_DAY_LATER",
    "START_TIME",
    "make_proposal",
    "sample_total",
]
