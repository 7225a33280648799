"""
Enrichment item CRUD operations.

Provides queue operations for visual elements waiting on the vision annotator.

Dependencies: sqlalchemy, knowledge_backend.boundary.db.models
System role: Enrichment Queue persistence operations
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_backend.boundary.db.CRUD.base_crud import BaseCRUD
from knowledge_backend.boundary.db.models.enrichment_model import (
    EnrichmentItemModel,
    EnrichmentStatus,
)
from knowledge_backend.observability.log_utils import truncate_error


class EnrichmentCRUD(BaseCRUD[EnrichmentItemModel]):
    """CRUD operations for EnrichmentItemModel."""

    def __init__(self) -> None:
        """Initialize EnrichmentCRUD with EnrichmentItemModel."""
        super().__init__(EnrichmentItemModel)

    async def claim_pending(
        self,
        session: AsyncSession,
        limit: int,
        document_id: UUID | None = None,
    ) -> list[EnrichmentItemModel]:
        """
        Claim up to `limit` pending items (oldest first).

        Args:
            session: Async database session
            limit: Maximum number of items to claim
            document_id: Restrict to one document (None for all)

        Returns:
            Claimed EnrichmentItemModels
        """
        stmt = select(EnrichmentItemModel.id).where(
            EnrichmentItemModel.status == EnrichmentStatus.PENDING
        )
        if document_id is not None:
            stmt = stmt.where(EnrichmentItemModel.document_id == document_id)
        stmt = stmt.order_by(EnrichmentItemModel.created_at, EnrichmentItemModel.id).limit(limit)
        candidate_ids = (await session.execute(stmt)).scalars().all()

        claimed_ids = [
            item_id
            for item_id in candidate_ids
            if await self.compare_and_set(
                session,
                item_id,
                EnrichmentStatus.PENDING,
                status=EnrichmentStatus.PROCESSING,
                attempt_count=EnrichmentItemModel.attempt_count + 1,
            )
        ]
        if not claimed_ids:
            return []
        result = await session.execute(
            select(EnrichmentItemModel)
            .where(EnrichmentItemModel.id.in_(claimed_ids))
            .order_by(EnrichmentItemModel.created_at, EnrichmentItemModel.id)
        )
        return list(result.scalars().all())

    async def mark_completed(
        self,
        session: AsyncSession,
        item_id: UUID,
        description: str,
    ) -> bool:
        """
        Record the annotator's description and close the item.

        Args:
            session: Async database session
            item_id: Enrichment item UUID
            description: Description written into the chunk

        Returns:
            True if the item moved from PROCESSING to COMPLETED
        """
        return await self.compare_and_set(
            session,
            item_id,
            EnrichmentStatus.PROCESSING,
            status=EnrichmentStatus.COMPLETED,
            description=description,
            error_message=None,
        )

    async def mark_failed(
        self,
        session: AsyncSession,
        item_id: UUID,
        error: BaseException | str,
    ) -> bool:
        """
        Close the item as failed.

        Args:
            session: Async database session
            item_id: Enrichment item UUID
            error: Annotator failure

        Returns:
            True if the item moved from PROCESSING to FAILED
        """
        return await self.compare_and_set(
            session,
            item_id,
            EnrichmentStatus.PROCESSING,
            status=EnrichmentStatus.FAILED,
            error_message=truncate_error(error),
        )

    async def reset_stale_processing(
        self,
        session: AsyncSession,
        older_than: datetime,
        max_attempts: int,
    ) -> tuple[list[EnrichmentItemModel], list[EnrichmentItemModel]]:
        """
        Recover items whose queue run vanished after claiming them.

        The lost attempt was counted at claim time. Items with attempts left
        go back to pending; the rest are failed, and the caller fails their
        chunks.

        Args:
            session: Async database session
            older_than: Cutoff on updated_at
            max_attempts: Claims allowed per item

        Returns:
            (released items, exhausted items)
        """
        stmt = select(EnrichmentItemModel).where(
            EnrichmentItemModel.status == EnrichmentStatus.PROCESSING,
            EnrichmentItemModel.updated_at < older_than,
        )
        stale = (await session.execute(stmt)).scalars().all()
        stale_error = TimeoutError(f"enrichment run exceeded stale cutoff {older_than.isoformat()}")

        released: list[EnrichmentItemModel] = []
        exhausted: list[EnrichmentItemModel] = []
        for item in stale:
            if item.attempt_count < max_attempts:
                if await self.compare_and_set(
                    session, item.id, EnrichmentStatus.PROCESSING, status=EnrichmentStatus.PENDING
                ):
                    released.append(item)
            elif await self.mark_failed(session, item.id, stale_error):
                exhausted.append(item)
        return released, exhausted

    async def get_by_document(
        self,
        session: AsyncSession,
        document_id: UUID,
    ) -> Sequence[EnrichmentItemModel]:
        """All items of a document, oldest first."""
        stmt = (
            select(EnrichmentItemModel)
            .where(EnrichmentItemModel.document_id == document_id)
            .order_by(EnrichmentItemModel.created_at)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def count_pending(self, session: AsyncSession, document_id: UUID | None = None) -> int:
        """Number of items waiting for a queue run, optionally within one document."""
        stmt = (
            select(func.count())
            .select_from(EnrichmentItemModel)
            .where(EnrichmentItemModel.status == EnrichmentStatus.PENDING)
        )
        if document_id is not None:
            stmt = stmt.where(EnrichmentItemModel.document_id == document_id)
        result = await session.execute(stmt)
        return result.scalar_one()


enrichment_crud = EnrichmentCRUD()
