"""
Integration test configuration with testcontainers.

Provides a session-scoped PostgreSQL 16 container with the ledger schema
applied, and a per-test session factory over clean tables.

Usage:
    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_example(session_factory: async_sessionmaker[AsyncSession]) -> None:
        repo = PostgresBalanceRepository(session_factory)
        ...

Note: Docker must be running; the tests are skipped otherwise.
"""

from collections.abc import AsyncGenerator, Generator
from pathlib import Path

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from testcontainers.postgres import PostgresContainer

from tests.integration.sql_helpers import execute_sql_file

MIGRATION = Path(__file__).resolve().parents[2] / "migrations" / "001_ledger_schema.sql"

TABLES = (
    "vote_aggregates",
    "user_votes",
    "proposals",
    "balance_aggregates",
    "ledger_entries",
)


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """Session-scoped PostgreSQL 16 container, started once per run."""
    container = PostgresContainer("postgres:16-alpine")
    try:
        container.start()
    except Exception as exc:
        pytest.skip(f"Docker unavailable: {exc}")
    try:
        yield container
    finally:
        container.stop()


@pytest.fixture(scope="session")
def postgres_async_url(postgres_container: PostgresContainer) -> str:
    """asyncpg URL for the container.

    testcontainers returns a psycopg2 URL by default.
    """
    sync_url = postgres_container.get_connection_url()
    return sync_url.replace("postgresql+psycopg2://", "postgresql+asyncpg://").replace(
        "postgresql://", "postgresql+asyncpg://"
    )


@pytest.fixture
async def session_factory(
    postgres_async_url: str,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Per-test session factory over freshly truncated ledger tables.

    Repositories commit their own transactions, so isolation comes from
    truncating every table before the test rather than from rollback.
    """
    engine = create_async_engine(postgres_async_url, echo=False)
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session, session.begin():
        await execute_sql_file(session, MIGRATION)
        await session.execute(text(f"TRUNCATE {', '.join(TABLES)}"))

    yield factory

    await engine.dispose()
