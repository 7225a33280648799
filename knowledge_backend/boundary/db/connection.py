"""
Engines and sessions for the chunk store.

Two kinds of engine exist. The API process shares one pooled engine for
its lifetime. Each Celery task gets a throwaway NullPool engine, because
the task body runs under its own event loop and asyncpg connections are
bound to the loop that opened them.

Dependencies: sqlalchemy, asyncpg, knowledge_backend.configs
System role: Connection lifecycle for API requests and worker tasks
"""

from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from knowledge_backend.configs import get_settings


def session_factory_for(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Bind a session factory with the ingestion defaults.

    Objects stay readable after commit because ledger components hand rows
    across short-lived sessions; flushing is always explicit.
    """
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@lru_cache
def get_async_engine() -> AsyncEngine:
    """
    Pooled engine shared by the API process.

    Returns:
        AsyncEngine: Engine with pre-ping enabled so dropped connections are
            replaced before a request sees them
    """
    database = get_settings().database
    return create_async_engine(
        database.async_database_url,
        echo=database.echo_sql,
        pool_pre_ping=True,
        pool_size=database.pool_size,
        max_overflow=database.max_overflow,
        pool_timeout=database.pool_timeout,
    )


@lru_cache
def get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    return session_factory_for(get_async_engine())


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session for FastAPI routes.

    Work left uncommitted when the route raises is rolled back before the
    session returns to the pool.

    Yields:
        AsyncSession: Session closed when the response is sent
    """
    async with get_async_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def create_task_engine() -> AsyncEngine:
    """
    Unpooled engine for a single worker task; the caller disposes it.

    Returns:
        AsyncEngine: NullPool engine on the configured database
    """
    database = get_settings().database
    return create_async_engine(database.async_database_url, echo=database.echo_sql, poolclass=NullPool)
