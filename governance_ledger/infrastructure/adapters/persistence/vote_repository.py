"""PostgreSQL vote repository (``user_votes`` and ``vote_aggregates``).

Vote power columns are NUMERIC(78, 0) so uint256 voting power fits; values
travel as Decimal and come back as int.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from governance_ledger.domain.errors import DuplicateVoteError, ProposalNotFoundError
from governance_ledger.domain.models import UserVote, VoteAggregate

_VOTE_COLUMNS = (
    "vote_id, proposal_id, voter_id, support, voting_power, voted_at, external_tx_hash"
)
_AGGREGATE_COLUMNS = (
    "proposal_id, for_votes, against_votes, total_voters, for_voters, "
    "against_voters, version, last_updated"
)

_INCREMENT_FOR = text("""
    UPDATE vote_aggregates
    SET for_votes = for_votes + :voting_power,
        for_voters = for_voters + 1,
        total_voters = total_voters + 1,
        version = version + 1,
        last_updated = now()
    WHERE proposal_id = :proposal_id
""")

_INCREMENT_AGAINST = text("""
    UPDATE vote_aggregates
    SET against_votes = against_votes + :voting_power,
        against_voters = against_voters + 1,
        total_voters = total_voters + 1,
        version = version + 1,
        last_updated = now()
    WHERE proposal_id = :proposal_id
""")


def _row_to_vote(row: Any) -> UserVote:
    return UserVote(
        vote_id=row.vote_id,
        proposal_id=int(row.proposal_id),
        voter_id=row.voter_id,
        support=row.support,
        voting_power=int(row.voting_power),
        voted_at=row.voted_at,
        external_tx_hash=row.external_tx_hash,
    )


def _row_to_aggregate(row: Any) -> VoteAggregate:
    return VoteAggregate(
        proposal_id=int(row.proposal_id),
        for_votes=int(row.for_votes),
        against_votes=int(row.against_votes),
        total_voters=row.total_voters,
        for_voters=row.for_voters,
        against_voters=row.against_voters,
        version=int(row.version),
        last_updated=row.last_updated,
    )


class PostgresVoteRepository:
    """VoteRepositoryProtocol backed by PostgreSQL."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert_vote(self, vote: UserVote) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(
                    text("""
                        INSERT INTO user_votes (
                            vote_id, proposal_id, voter_id, support,
                            voting_power, voted_at, external_tx_hash
                        ) VALUES (
                            :vote_id, :proposal_id, :voter_id, :support,
                            :voting_power, :voted_at, :external_tx_hash
                        )
                        ON CONFLICT ON CONSTRAINT uq_user_votes_proposal_voter DO NOTHING
                    """),
                    {
                        "vote_id": vote.vote_id,
                        "proposal_id": vote.proposal_id,
                        "voter_id": vote.voter_id,
                        "support": vote.support,
                        "voting_power": Decimal(vote.voting_power),
                        "voted_at": vote.voted_at,
                        "external_tx_hash": vote.external_tx_hash,
                    },
                )
                inserted = result.rowcount == 1
        except IntegrityError as exc:
            # Only the proposal foreign key can fail here
            raise ProposalNotFoundError(vote.proposal_id) from exc

        if not inserted:
            existing = await self.get_vote(vote.proposal_id, vote.voter_id)
            raise DuplicateVoteError(
                proposal_id=vote.proposal_id,
                voter_id=vote.voter_id,
                existing_vote_id=existing.vote_id if existing else None,
                voted_at=existing.voted_at if existing else None,
            )

    async def get_vote(self, proposal_id: int, voter_id: str) -> UserVote | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text(f"""
                    SELECT {_VOTE_COLUMNS} FROM user_votes
                    WHERE proposal_id = :proposal_id AND voter_id = :voter_id
                """),
                {"proposal_id": proposal_id, "voter_id": voter_id},
            )
            row = result.fetchone()
        return _row_to_vote(row) if row is not None else None

    async def delete_vote(self, proposal_id: int, voter_id: str) -> bool:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                text("""
                    DELETE FROM user_votes
                    WHERE proposal_id = :proposal_id AND voter_id = :voter_id
                """),
                {"proposal_id": proposal_id, "voter_id": voter_id},
            )
            return result.rowcount == 1

    async def set_external_tx_hash(
        self, proposal_id: int, voter_id: str, tx_hash: str
    ) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(
                text("""
                    UPDATE user_votes SET external_tx_hash = :tx_hash
                    WHERE proposal_id = :proposal_id AND voter_id = :voter_id
                """),
                {"proposal_id": proposal_id, "voter_id": voter_id, "tx_hash": tx_hash},
            )

    async def list_votes(self, proposal_id: int) -> list[UserVote]:
        async with self._session_factory() as session:
            result = await session.execute(
                text(f"""
                    SELECT {_VOTE_COLUMNS} FROM user_votes
                    WHERE proposal_id = :proposal_id
                    ORDER BY voted_at, vote_id
                """),
                {"proposal_id": proposal_id},
            )
            return [_row_to_vote(row) for row in result.fetchall()]

    async def list_votes_by_voter(self, voter_id: str) -> list[UserVote]:
        async with self._session_factory() as session:
            result = await session.execute(
                text(f"""
                    SELECT {_VOTE_COLUMNS} FROM user_votes
                    WHERE voter_id = :voter_id
                    ORDER BY voted_at DESC, vote_id DESC
                """),
                {"voter_id": voter_id},
            )
            return [_row_to_vote(row) for row in result.fetchall()]

    async def ensure_aggregate(self, proposal_id: int) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(
                text("""
                    INSERT INTO vote_aggregates (proposal_id)
                    VALUES (:proposal_id)
                    ON CONFLICT (proposal_id) DO NOTHING
                """),
                {"proposal_id": proposal_id},
            )

    async def get_aggregate(self, proposal_id: int) -> VoteAggregate | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text(f"""
                    SELECT {_AGGREGATE_COLUMNS} FROM vote_aggregates
                    WHERE proposal_id = :proposal_id
                """),
                {"proposal_id": proposal_id},
            )
            row = result.fetchone()
        return _row_to_aggregate(row) if row is not None else None

    async def increment_aggregate(
        self, proposal_id: int, support: bool, voting_power: int
    ) -> bool:
        statement = _INCREMENT_FOR if support else _INCREMENT_AGAINST
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                statement,
                {"proposal_id": proposal_id, "voting_power": Decimal(voting_power)},
            )
            return result.rowcount == 1

    async def overwrite_aggregate(self, aggregate: VoteAggregate) -> VoteAggregate:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                text(f"""
                    INSERT INTO vote_aggregates (
                        proposal_id, for_votes, against_votes, total_voters,
                        for_voters, against_voters, version, last_updated
                    ) VALUES (
                        :proposal_id, :for_votes, :against_votes, :total_voters,
                        :for_voters, :against_voters, 1, now()
                    )
                    ON CONFLICT (proposal_id) DO UPDATE
                    SET for_votes = EXCLUDED.for_votes,
                        against_votes = EXCLUDED.against_votes,
                        total_voters = EXCLUDED.total_voters,
                        for_voters = EXCLUDED.for_voters,
                        against_voters = EXCLUDED.against_voters,
                        version = vote_aggregates.version + 1,
                        last_updated = EXCLUDED.last_updated
                    RETURNING {_AGGREGATE_COLUMNS}
                """),
                {
                    "proposal_id": aggregate.proposal_id,
                    "for_votes": Decimal(aggregate.for_votes),
                    "against_votes": Decimal(aggregate.against_votes),
                    "total_voters": aggregate.total_voters,
                    "for_voters": aggregate.for_voters,
                    "against_voters": aggregate.against_voters,
                },
            )
            return _row_to_aggregate(result.one())
