"""
Database table creation script.

Creates the pgvector extension (PostgreSQL only) and all tables defined in
ORM models using SQLAlchemy metadata.

Dependencies: sqlalchemy, knowledge_backend.configs
System role: Database schema initialization

Usage:
    python -m knowledge_backend.boundary.db.create_tables
"""

import asyncio
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from knowledge_backend.boundary.db.base import Base
from knowledge_backend.boundary.db.connection import get_async_engine

# Import all models to register them with Base.metadata
from knowledge_backend.boundary.db import models  # noqa: F401

logger = logging.getLogger(__name__)


async def create_all_tables(engine: AsyncEngine | None = None) -> None:
    """
    Create all database tables from registered ORM models.

    Idempotent: calls CREATE TABLE IF NOT EXISTS for each model, so safe
    to run multiple times. Existing tables remain unchanged. PostgreSQL-only
    indexes (HNSW, full-text GIN) are skipped on other dialects.

    Args:
        engine: Engine to use (defaults to the application engine)

    Raises:
        SQLAlchemyError: If database connection fails or table creation fails
    """
    engine = engine or get_async_engine()

    async with engine.begin() as conn:
        if conn.dialect.name == "postgresql":
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)

    logger.info(f"{__name__}:create_all_tables - Tables created successfully")


async def drop_all_tables(engine: AsyncEngine | None = None) -> None:
    """
    Drop all database tables and their data.

    WARNING: Irreversible data loss. Only use in development environments.

    Args:
        engine: Engine to use (defaults to the application engine)
    """
    engine = engine or get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info(f"{__name__}:drop_all_tables - All tables dropped")


if __name__ == "__main__":
    asyncio.run(create_all_tables())
