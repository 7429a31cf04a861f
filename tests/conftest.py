"""
Pytest configuration and shared fixtures for governance ledger tests.

Testing Standards:
- Async tests use pytest.mark.asyncio (auto mode enabled in pyproject.toml)
- Use AsyncMock for collaborators a stub does not cover
- Unit tests go in tests/unit/, against the in-memory stubs
- Integration tests go in tests/integration/ and need Docker
"""

import pytest

from governance_ledger.infrastructure.stubs import (
    BalanceRepositoryStub,
    ExternalAuthorityStub,
    LedgerRepositoryStub,
    ProposalRepositoryStub,
    VoteRepositoryStub,
)
from tests.helpers import START_TIME, FakeTimeAuthority


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from governance_ledger import __version__

    return __version__


@pytest.fixture
def fake_time_authority() -> FakeTimeAuthority:
    """Time frozen at START_TIME."""
    return FakeTimeAuthority(frozen_at=START_TIME)


@pytest.fixture
def ledger_repo() -> LedgerRepositoryStub:
    return LedgerRepositoryStub()


@pytest.fixture
def balance_repo() -> BalanceRepositoryStub:
    return BalanceRepositoryStub()


@pytest.fixture
def vote_repo() -> VoteRepositoryStub:
    return VoteRepositoryStub()


@pytest.fixture
def proposal_repo() -> ProposalRepositoryStub:
    return ProposalRepositoryStub()


@pytest.fixture
def authority() -> ExternalAuthorityStub:
    """External authority whose contract has issued 41 proposals."""
    return ExternalAuthorityStub(highest_id=41)
