"""PostgreSQL balance aggregate repository.

Each mutation is a single UPDATE whose WHERE clause carries the balance
predicate, so the database linearizes concurrent spends and ``rowcount``
reports whether the mutation applied.
"""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from governance_ledger.application.ports.balance_repository import BalanceField
from governance_ledger.domain.models import BalanceAggregate


def _column(field: BalanceField) -> str:
    # Column names come from the enum, never from caller input
    return BalanceField(field).value


class PostgresBalanceRepository:
    """BalanceRepositoryProtocol backed by ``balance_aggregates``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def ensure_exists(self, subject_id: str) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(
                text("""
                    INSERT INTO balance_aggregates (subject_id)
                    VALUES (:subject_id)
                    ON CONFLICT (subject_id) DO NOTHING
                """),
                {"subject_id": subject_id},
            )

    async def get(self, subject_id: str) -> BalanceAggregate | None:
        async with self._session_factory() as session:
            result = await session.execute(
                text("""
                    SELECT subject_id, main_point, sub_point, token_balance, updated_at
                    FROM balance_aggregates
                    WHERE subject_id = :subject_id
                """),
                {"subject_id": subject_id},
            )
            row = result.fetchone()
        if row is None:
            return None
        return BalanceAggregate(
            subject_id=row.subject_id,
            main_point=int(row.main_point),
            sub_point=int(row.sub_point),
            token_balance=int(row.token_balance),
            updated_at=row.updated_at,
        )

    async def increment(self, subject_id: str, field: BalanceField, amount: int) -> bool:
        column = _column(field)
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                text(f"""
                    UPDATE balance_aggregates
                    SET {column} = {column} + :amount, updated_at = now()
                    WHERE subject_id = :subject_id
                """),
                {"subject_id": subject_id, "amount": amount},
            )
            return result.rowcount == 1

    async def decrement_if_sufficient(
        self, subject_id: str, field: BalanceField, amount: int
    ) -> bool:
        column = _column(field)
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                text(f"""
                    UPDATE balance_aggregates
                    SET {column} = {column} - :amount, updated_at = now()
                    WHERE subject_id = :subject_id AND {column} >= :amount
                """),
                {"subject_id": subject_id, "amount": amount},
            )
            return result.rowcount == 1

    async def transfer_if_sufficient(
        self,
        subject_id: str,
        debit_field: BalanceField,
        debit_amount: int,
        credit_field: BalanceField,
        credit_amount: int,
    ) -> bool:
        debit = _column(debit_field)
        credit = _column(credit_field)
        if debit == credit:
            raise ValueError("debit and credit fields must differ")
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                text(f"""
                    UPDATE balance_aggregates
                    SET {debit} = {debit} - :debit_amount,
                        {credit} = {credit} + :credit_amount,
                        updated_at = now()
                    WHERE subject_id = :subject_id AND {debit} >= :debit_amount
                """),
                {
                    "subject_id": subject_id,
                    "debit_amount": debit_amount,
                    "credit_amount": credit_amount,
                },
            )
            return result.rowcount == 1

    async def overwrite(self, aggregate: BalanceAggregate) -> BalanceAggregate:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                text("""
                    INSERT INTO balance_aggregates
                        (subject_id, main_point, sub_point, token_balance, updated_at)
                    VALUES (:subject_id, :main_point, :sub_point, :token_balance, now())
                    ON CONFLICT (subject_id) DO UPDATE
                    SET main_point = EXCLUDED.main_point,
                        sub_point = EXCLUDED.sub_point,
                        token_balance = EXCLUDED.token_balance,
                        updated_at = EXCLUDED.updated_at
                    RETURNING subject_id, main_point, sub_point, token_balance, updated_at
                """),
                {
                    "subject_id": aggregate.subject_id,
                    "main_point": aggregate.main_point,
                    "sub_point": aggregate.sub_point,
                    "token_balance": aggregate.token_balance,
                },
            )
            row = result.one()
        return BalanceAggregate(
            subject_id=row.subject_id,
            main_point=int(row.main_point),
            sub_point=int(row.sub_point),
            token_balance=int(row.token_balance),
            updated_at=row.updated_at,
        )

    async def list_subject_ids(self) -> list[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT subject_id FROM balance_aggregates ORDER BY subject_id")
            )
            return [row[0] for row in result.fetchall()]
