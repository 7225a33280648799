"""
Document completion checks.

The document status is only ever advanced by re-reading child state and
compare-and-set, never by counting events, so duplicate or reordered
notifications from batches, enrichment items and drains are harmless.

Dependencies: sqlalchemy, knowledge_backend.boundary.db
System role: Shared readiness check for the ingestion pipeline
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from knowledge_backend.boundary.db.CRUD.batch_crud import batch_crud
from knowledge_backend.boundary.db.CRUD.chunk_crud import chunk_crud
from knowledge_backend.boundary.db.CRUD.document_crud import document_crud
from knowledge_backend.boundary.db.models.batch_model import BatchStatus
from knowledge_backend.boundary.db.models.chunk_model import (
    OPEN_EMBEDDING_STATUSES,
    EmbeddingStatus,
)
from knowledge_backend.boundary.db.models.document_model import DocumentStatus

logger = logging.getLogger(__name__)


async def is_document_complete(session: AsyncSession, document_id: uuid.UUID) -> bool:
    """
    Whether a document satisfies the readiness condition.

    All batches completed, no chunk pending / processing / waiting for
    enrichment, and at least one chunk ready.
    """
    batches = await batch_crud.count_by_status(session, document_id)
    total_batches = sum(batches.values())
    if total_batches == 0 or batches[BatchStatus.COMPLETED] != total_batches:
        return False

    chunks = await chunk_crud.count_by_status(session, document_id)
    if any(chunks[status] for status in OPEN_EMBEDDING_STATUSES):
        return False
    return chunks[EmbeddingStatus.READY] > 0


async def check_document_ready(
    session_factory: async_sessionmaker[AsyncSession],
    document_id: uuid.UUID,
) -> bool:
    """
    Move a chunked document to ready when its children allow it.

    Documents whose chunks all failed stay chunked.

    Args:
        session_factory: Session factory
        document_id: Document to check

    Returns:
        bool: True if this call performed the chunked -> ready transition
    """
    async with session_factory() as session:
        if not await is_document_complete(session, document_id):
            return False
        transitioned = await document_crud.transition_status(
            session,
            document_id,
            DocumentStatus.CHUNKED,
            DocumentStatus.READY,
        )
        await session.commit()

    if transitioned:
        logger.info(
            f"{__name__}:check_document_ready - Document ready",
            extra={"document_id": str(document_id)},
        )
    return transitioned
