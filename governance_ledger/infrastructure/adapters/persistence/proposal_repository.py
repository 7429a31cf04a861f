"""PostgreSQL proposal repository."""

from __future__ import annotations

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from governance_ledger.domain.errors import ProposalAlreadyExistsError
from governance_ledger.domain.models import Proposal

_COLUMNS = (
    "proposal_id, description, proposer_id, deadline, executed, canceled, "
    "created_at, external_tx_hash"
)


def _row_to_proposal(row: Any) -> Proposal:
    return Proposal(
        proposal_id=int(row.proposal_id),
        description=row.description,
        proposer_id=row.proposer_id,
        deadline=row.deadline,
        created_at=row.created_at,
        executed=row.executed,
        canceled=row.canceled,
        external_tx_hash=row.external_tx_hash,
    )


class PostgresProposalRepository:
    """ProposalRepositoryProtocol backed by ``proposals``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, proposal: Proposal) -> None:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                text("""
                    INSERT INTO proposals (
                        proposal_id, description, proposer_id, deadline,
                        executed, canceled, created_at, external_tx_hash
                    ) VALUES (
                        :proposal_id, :description, :proposer_id, :deadline,
                        :executed, :canceled, :created_at, :external_tx_hash
                    )
                    ON CONFLICT (proposal_id) DO NOTHING
                """),
                {
                    "proposal_id": proposal.proposal_id,
                    "description": proposal.description,
                    "proposer_id": proposal.proposer_id,
                    "deadline": proposal.deadline,
                    "executed": proposal.executed,
                    "canceled": proposal.canceled,
                    "created_at": proposal.created_at,
                    "external_tx_hash": proposal.external_tx_hash,
                },
            )
            if result.rowcount == 0:
                raise ProposalAlreadyExistsError(proposal.proposal_id)

    async def get(self, proposal_id: int) -> Proposal | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text(f"SELECT {_COLUMNS} FROM proposals WHERE proposal_id = :proposal_id"),
                {"proposal_id": proposal_id},
            )
            row = result.fetchone()
        return _row_to_proposal(row) if row is not None else None

    async def set_executed(self, proposal_id: int) -> bool:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                text("""
                    UPDATE proposals SET executed = TRUE
                    WHERE proposal_id = :proposal_id AND canceled = FALSE
                """),
                {"proposal_id": proposal_id},
            )
            return result.rowcount == 1

    async def set_canceled(self, proposal_id: int) -> bool:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                text("""
                    UPDATE proposals SET canceled = TRUE
                    WHERE proposal_id = :proposal_id AND executed = FALSE
                """),
                {"proposal_id": proposal_id},
            )
            return result.rowcount == 1

    async def list_ids(self) -> list[int]:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT proposal_id FROM proposals ORDER BY proposal_id")
            )
            return [int(row[0]) for row in result.fetchall()]
