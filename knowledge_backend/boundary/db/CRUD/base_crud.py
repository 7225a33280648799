"""
Shared row access for the ingestion ledger tables.

Documents, batches, chunks and enrichment jobs are all state machines keyed
by a UUID. This module holds the pieces they have in common: inserting a
row, loading it, writing free-form columns and, most importantly, the
guarded status transition that every claim in the pipeline goes through.

Dependencies: sqlalchemy
System role: Parent class of the per-table CRUD singletons
"""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_backend.boundary.db.base import Base

RowT = TypeVar("RowT", bound=Base)

_MULTI_STATUS = (tuple, list, set, frozenset)


class BaseCRUD(Generic[RowT]):
    """
    Row access shared by every ledger table.

    Subclasses bind a model and add their table's queries. Nothing here
    commits; the caller owns the transaction.

    Attributes:
        model: Mapped class this instance reads and writes
        status_field: Column that compare_and_set guards
    """

    status_field: str = "status"

    def __init__(self, model: type[RowT]) -> None:
        self.model = model

    def _pk_clause(self, row_id: UUID):
        return self.model.id == row_id

    def _status_clause(self, expected: Any):
        column = getattr(self.model, self.status_field)
        if isinstance(expected, _MULTI_STATUS):
            return column.in_(list(expected))
        return column == expected

    async def create(self, session: AsyncSession, **columns) -> RowT:
        """
        Insert a row and return it with server defaults loaded.

        Args:
            session: Open session (flushed, not committed)
            **columns: Column values for the new row

        Returns:
            The persisted instance, id and timestamps populated
        """
        row = self.model(**columns)
        session.add(row)
        await session.flush()
        await session.refresh(row)
        return row

    async def get_by_id(self, session: AsyncSession, id: UUID) -> RowT | None:
        """Load one row by primary key, or None."""
        result = await session.execute(select(self.model).where(self._pk_clause(id)))
        return result.scalar_one_or_none()

    async def exists(self, session: AsyncSession, id: UUID) -> bool:
        result = await session.execute(select(self.model.id).where(self._pk_clause(id)))
        return result.first() is not None

    async def update_by_id(self, session: AsyncSession, id: UUID, **values) -> bool:
        """
        Write columns without a status guard.

        Reserved for columns that sit outside the state machine (reports,
        page counts, cached summaries). Status moves use compare_and_set.

        Returns:
            bool: Whether a row with this id was found
        """
        stmt = (
            update(self.model)
            .where(self._pk_clause(id))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        outcome = await session.execute(stmt)
        return outcome.rowcount > 0

    async def compare_and_set(
        self,
        session: AsyncSession,
        id: UUID,
        expected: Any,
        **values,
    ) -> bool:
        """
        Move a row out of an expected status in a single UPDATE.

        Issues ``UPDATE ... WHERE id = :id AND status = :expected`` (or
        ``IN (...)`` when several statuses are accepted). Exactly one of any
        number of concurrent callers observes a row count of one, and that
        caller owns the transition.

        Args:
            session: Open session
            id: Row primary key
            expected: Status the row must currently hold, or a collection of them
            **values: Columns written when the guard matches

        Returns:
            bool: True when this call performed the transition
        """
        stmt = (
            update(self.model)
            .where(self._pk_clause(id), self._status_clause(expected))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        outcome = await session.execute(stmt)
        return outcome.rowcount == 1
