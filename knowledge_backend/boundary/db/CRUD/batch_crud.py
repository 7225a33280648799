"""
Batch CRUD operations.

Provides the batch half of the Job Ledger: creating a document's batches,
claiming them, recording outcomes and finding work that lost its chain.

Dependencies: sqlalchemy, knowledge_backend.boundary.db.models
System role: Batch persistence operations for the Job Ledger
"""

from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_backend.boundary.db.CRUD.base_crud import BaseCRUD
from knowledge_backend.boundary.db.models.batch_model import BatchModel, BatchStatus
from knowledge_backend.boundary.db.models.document_model import DocumentModel, DocumentStatus
from knowledge_backend.core.error_categories import categorize_error
from knowledge_backend.observability.log_utils import truncate_error

PageRange = tuple[int | None, int | None]


class BatchCRUD(BaseCRUD[BatchModel]):
    """
    CRUD operations for BatchModel.

    claim() is the only way into PROCESSING and always counts an attempt.
    """

    def __init__(self) -> None:
        """Initialize BatchCRUD with BatchModel."""
        super().__init__(BatchModel)

    async def create_batches(
        self,
        session: AsyncSession,
        document_id: UUID,
        ranges: Sequence[PageRange],
    ) -> list[BatchModel]:
        """
        Create pending batches for a document, indexed from 0.

        Args:
            session: Async database session
            document_id: Owning document UUID
            ranges: (page_start, page_end) per batch, in order

        Returns:
            Created BatchModels ordered by batch_index
        """
        batches = [
            BatchModel(
                document_id=document_id,
                batch_index=index,
                page_start=page_start,
                page_end=page_end,
                status=BatchStatus.PENDING,
                attempt_count=0,
                metrics={},
            )
            for index, (page_start, page_end) in enumerate(ranges)
        ]
        session.add_all(batches)
        await session.flush()
        return batches

    async def get_by_document(
        self,
        session: AsyncSession,
        document_id: UUID,
    ) -> Sequence[BatchModel]:
        """
        Retrieve all batches of a document ordered by batch_index.

        Args:
            session: Async database session
            document_id: Owning document UUID

        Returns:
            Sequence of BatchModels
        """
        stmt = (
            select(BatchModel)
            .where(BatchModel.document_id == document_id)
            .order_by(BatchModel.batch_index)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def claim(self, session: AsyncSession, batch_id: UUID) -> bool:
        """
        Claim a pending batch for processing and count the attempt.

        Args:
            session: Async database session
            batch_id: Batch UUID

        Returns:
            True if this caller owns the batch now, False if it was not pending
        """
        return await self.compare_and_set(
            session,
            batch_id,
            BatchStatus.PENDING,
            status=BatchStatus.PROCESSING,
            attempt_count=BatchModel.attempt_count + 1,
        )

    async def mark_completed(
        self,
        session: AsyncSession,
        batch_id: UUID,
        metrics: dict[str, Any],
    ) -> bool:
        """
        Mark a processing batch as completed with its trace metrics.

        Args:
            session: Async database session
            batch_id: Batch UUID
            metrics: chunks_created, visual_elements_found, ... for the batch

        Returns:
            True if the batch moved to COMPLETED
        """
        return await self.compare_and_set(
            session,
            batch_id,
            BatchStatus.PROCESSING,
            status=BatchStatus.COMPLETED,
            metrics=metrics,
        )

    async def release_for_retry(
        self,
        session: AsyncSession,
        batch_id: UUID,
        error: BaseException,
    ) -> bool:
        """
        Return a processing batch to pending after a transient failure.

        Args:
            session: Async database session
            batch_id: Batch UUID
            error: Failure that caused the release

        Returns:
            True if the batch moved back to PENDING
        """
        return await self.compare_and_set(
            session,
            batch_id,
            BatchStatus.PROCESSING,
            status=BatchStatus.PENDING,
            last_error=truncate_error(error),
            error_category=categorize_error(error).value,
        )

    async def mark_failed(
        self,
        session: AsyncSession,
        batch_id: UUID,
        error: BaseException,
    ) -> bool:
        """
        Mark a batch as failed (attempt budget exhausted or structural failure).

        Args:
            session: Async database session
            batch_id: Batch UUID
            error: Failure to record

        Returns:
            True if the batch moved to FAILED
        """
        return await self.compare_and_set(
            session,
            batch_id,
            (BatchStatus.PENDING, BatchStatus.PROCESSING),
            status=BatchStatus.FAILED,
            last_error=truncate_error(error),
            error_category=categorize_error(error).value,
        )

    async def next_pending(
        self,
        session: AsyncSession,
        document_id: UUID,
    ) -> BatchModel | None:
        """
        Lowest-index pending batch of a document.

        Args:
            session: Async database session
            document_id: Owning document UUID

        Returns:
            BatchModel if one is pending, None otherwise
        """
        stmt = (
            select(BatchModel)
            .where(
                BatchModel.document_id == document_id,
                BatchModel.status == BatchStatus.PENDING,
            )
            .order_by(BatchModel.batch_index)
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_by_status(
        self,
        session: AsyncSession,
        document_id: UUID,
    ) -> dict[BatchStatus, int]:
        """
        Count a document's batches per status.

        Args:
            session: Async database session
            document_id: Owning document UUID

        Returns:
            Mapping with every BatchStatus present (zero when absent)
        """
        stmt = (
            select(BatchModel.status, func.count())
            .where(BatchModel.document_id == document_id)
            .group_by(BatchModel.status)
        )
        result = await session.execute(stmt)
        counts = {status: 0 for status in BatchStatus}
        for status, count in result.all():
            counts[status] = count
        return counts

    async def get_stale_processing(
        self,
        session: AsyncSession,
        older_than: datetime,
    ) -> Sequence[BatchModel]:
        """
        Batches stuck in processing since before the cutoff.

        Args:
            session: Async database session
            older_than: Cutoff on updated_at

        Returns:
            Sequence of stale BatchModels
        """
        stmt = select(BatchModel).where(
            BatchModel.status == BatchStatus.PROCESSING,
            BatchModel.updated_at < older_than,
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def reset_stale_processing(
        self,
        session: AsyncSession,
        older_than: datetime,
        max_attempts: int,
    ) -> tuple[list[BatchModel], list[BatchModel]]:
        """
        Release batches whose worker vanished.

        The abandoned attempt was already counted at claim time. Batches with
        budget left go back to pending; the rest are failed.

        Args:
            session: Async database session
            older_than: Cutoff on updated_at
            max_attempts: Attempt cap per batch

        Returns:
            (released batches, exhausted batches)
        """
        released: list[BatchModel] = []
        exhausted: list[BatchModel] = []
        stale_error = TimeoutError(f"batch processing exceeded stale cutoff {older_than.isoformat()}")

        for batch in await self.get_stale_processing(session, older_than):
            if batch.attempt_count < max_attempts:
                if await self.release_for_retry(session, batch.id, stale_error):
                    released.append(batch)
            elif await self.mark_failed(session, batch.id, stale_error):
                exhausted.append(batch)
        return released, exhausted

    async def get_pending(
        self,
        session: AsyncSession,
        limit: int | None = None,
    ) -> Sequence[BatchModel]:
        """
        Pending batches of documents that are still processing.

        Used by reconciliation to restart chains that were dropped.

        Args:
            session: Async database session
            limit: Maximum number of batches to return

        Returns:
            Sequence of pending BatchModels ordered by document and index
        """
        stmt = (
            select(BatchModel)
            .join(DocumentModel, DocumentModel.id == BatchModel.document_id)
            .where(
                BatchModel.status == BatchStatus.PENDING,
                DocumentModel.status == DocumentStatus.PROCESSING,
            )
            .order_by(BatchModel.document_id, BatchModel.batch_index)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def aggregate_metrics(
        self,
        session: AsyncSession,
        document_id: UUID,
    ) -> dict[str, Any]:
        """
        Sum per-batch metrics into a document processing report.

        Args:
            session: Async database session
            document_id: Owning document UUID

        Returns:
            dict: Summed counters, per-type chunk counts and batch count
        """
        report: dict[str, Any] = {
            "batches": 0,
            "chunks_created": 0,
            "visual_elements_found": 0,
            "visual_elements_enqueued": 0,
            "processing_time_ms": 0,
            "total_attempts": 0,
            "chunk_types": {},
        }
        for batch in await self.get_by_document(session, document_id):
            metrics = batch.metrics or {}
            report["batches"] += 1
            report["total_attempts"] += batch.attempt_count
            for key in (
                "chunks_created",
                "visual_elements_found",
                "visual_elements_enqueued",
                "processing_time_ms",
            ):
                report[key] += int(metrics.get(key, 0))
            for chunk_type, count in (metrics.get("chunk_types") or {}).items():
                report["chunk_types"][chunk_type] = report["chunk_types"].get(chunk_type, 0) + count
        return report

    async def delete_for_document(self, session: AsyncSession, document_id: UUID) -> int:
        """
        Remove every batch of a document (reconciliation reset).

        Args:
            session: Async database session
            document_id: Owning document UUID

        Returns:
            Number of deleted batches
        """
        stmt = delete(BatchModel).where(BatchModel.document_id == document_id)
        result = await session.execute(stmt)
        return result.rowcount


batch_crud = BatchCRUD()
