"""
Document CRUD operations.

Provides Create, Read, Update, Delete operations for DocumentModel
with guarded status transitions and the reconciliation queries.

Dependencies: sqlalchemy, knowledge_backend.boundary.db.models
System role: Document persistence operations for the Job Ledger
"""

from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import and_, exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_backend.boundary.db.CRUD.base_crud import BaseCRUD
from knowledge_backend.boundary.db.models.batch_model import BatchModel, BatchStatus
from knowledge_backend.boundary.db.models.chunk_model import (
    OPEN_EMBEDDING_STATUSES,
    ChunkModel,
    EmbeddingStatus,
)
from knowledge_backend.boundary.db.models.document_model import DocumentModel, DocumentStatus
from knowledge_backend.core.error_categories import categorize_error
from knowledge_backend.observability.log_utils import truncate_error


class DocumentCRUD(BaseCRUD[DocumentModel]):
    """
    CRUD operations for DocumentModel.

    Status changes are compare-and-set only: a caller names the status it
    expects and learns whether it won the transition.
    """

    def __init__(self) -> None:
        """Initialize DocumentCRUD with DocumentModel."""
        super().__init__(DocumentModel)

    async def get_status(self, session: AsyncSession, id: UUID) -> DocumentStatus | None:
        """Read only the status column (fresh from the database)."""
        stmt = select(DocumentModel.status).where(DocumentModel.id == id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def transition_status(
        self,
        session: AsyncSession,
        id: UUID,
        expected: DocumentStatus | tuple[DocumentStatus, ...],
        new: DocumentStatus,
        **fields: Any,
    ) -> bool:
        """
        Move a document from an expected status to a new one.

        Args:
            session: Async database session
            id: Document UUID
            expected: Status (or statuses) the row must currently have
            new: Target status
            **fields: Additional columns to write with the transition

        Returns:
            True if this caller performed the transition
        """
        return await self.compare_and_set(session, id, expected, status=new, **fields)

    async def mark_failed(
        self,
        session: AsyncSession,
        id: UUID,
        error: BaseException | str,
    ) -> bool:
        """
        Mark a document as failed with error details.

        Ready and already-failed documents are left untouched.

        Args:
            session: Async database session
            id: Document UUID
            error: Exception or message that caused the failure

        Returns:
            True if the document was moved to FAILED
        """
        category = categorize_error(error).value if isinstance(error, BaseException) else None
        return await self.transition_status(
            session,
            id,
            (DocumentStatus.INGESTED, DocumentStatus.PROCESSING, DocumentStatus.CHUNKED),
            DocumentStatus.FAILED,
            last_error=truncate_error(error),
            error_category=category,
        )

    async def record_error(
        self,
        session: AsyncSession,
        id: UUID,
        error: BaseException,
    ) -> bool:
        """
        Record the latest error on a document without changing its status.

        Args:
            session: Async database session
            id: Document UUID
            error: Exception to record

        Returns:
            True if the document exists
        """
        return await self.update_by_id(
            session,
            id,
            last_error=truncate_error(error),
            error_category=categorize_error(error).value,
        )

    async def increment_attempts(self, session: AsyncSession, id: UUID) -> bool:
        """
        Count one more batch extraction attempt against the document.

        Args:
            session: Async database session
            id: Document UUID

        Returns:
            True if the document exists
        """
        stmt = (
            update(DocumentModel)
            .where(DocumentModel.id == id)
            .values(attempt_count=DocumentModel.attempt_count + 1)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount > 0

    async def get_stuck_without_chunks(
        self,
        session: AsyncSession,
        older_than: datetime,
        statuses: Sequence[DocumentStatus] = (DocumentStatus.PROCESSING, DocumentStatus.CHUNKED),
    ) -> Sequence[DocumentModel]:
        """
        Documents that claim progress but have nothing to show for it.

        Matches documents in one of the given statuses, untouched since the
        cutoff, with zero chunks and no batch currently processing. Every batch
        claim touches the document, so a document still retrying its first
        batch is not matched.

        Args:
            session: Async database session
            older_than: Cutoff on the document's updated_at
            statuses: Statuses considered "in progress"

        Returns:
            Sequence of stuck DocumentModels
        """
        has_chunks = exists().where(ChunkModel.document_id == DocumentModel.id)
        has_processing_batch = exists().where(
            and_(
                BatchModel.document_id == DocumentModel.id,
                BatchModel.status == BatchStatus.PROCESSING,
            )
        )
        stmt = select(DocumentModel).where(
            DocumentModel.status.in_(list(statuses)),
            DocumentModel.updated_at < older_than,
            ~has_chunks,
            ~has_processing_batch,
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_processing_with_settled_batches(
        self,
        session: AsyncSession,
    ) -> Sequence[DocumentModel]:
        """
        Processing documents with batches but none pending or processing.

        Their chain stopped between the last batch completing and the
        completion check, so nothing will move them to chunked on its own.

        Args:
            session: Async database session

        Returns:
            Sequence of DocumentModels waiting for complete_document
        """
        has_batch = exists().where(BatchModel.document_id == DocumentModel.id)
        has_open_batch = exists().where(
            and_(
                BatchModel.document_id == DocumentModel.id,
                BatchModel.status.in_([BatchStatus.PENDING, BatchStatus.PROCESSING]),
            )
        )
        stmt = select(DocumentModel).where(
            DocumentModel.status == DocumentStatus.PROCESSING,
            has_batch,
            ~has_open_batch,
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_unready_with_all_chunks_ready(
        self,
        session: AsyncSession,
    ) -> Sequence[DocumentModel]:
        """
        Chunked documents with no open chunk work and at least one ready chunk.

        These missed their readiness transition (for example because the
        worker that embedded the last chunk crashed before checking).

        Args:
            session: Async database session

        Returns:
            Sequence of DocumentModels eligible for the readiness check
        """
        has_ready = exists().where(
            and_(
                ChunkModel.document_id == DocumentModel.id,
                ChunkModel.embedding_status == EmbeddingStatus.READY,
            )
        )
        has_open = exists().where(
            and_(
                ChunkModel.document_id == DocumentModel.id,
                ChunkModel.embedding_status.in_(list(OPEN_EMBEDDING_STATUSES)),
            )
        )
        stmt = select(DocumentModel).where(
            DocumentModel.status == DocumentStatus.CHUNKED,
            has_ready,
            ~has_open,
        )
        result = await session.execute(stmt)
        return result.scalars().all()


document_crud = DocumentCRUD()
