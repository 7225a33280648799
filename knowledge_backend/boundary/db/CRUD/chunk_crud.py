"""
Chunk CRUD operations.

Provides the Chunk Store operations used by the Chunk Builder, the
Enrichment Queue, the Embedding Worker and agent knowledge sync.

Dependencies: sqlalchemy, knowledge_backend.boundary.db.models
System role: Chunk persistence operations
"""

from datetime import datetime
from typing import Any, Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_backend.boundary.db.base import utc_now
from knowledge_backend.boundary.db.CRUD.base_crud import BaseCRUD
from knowledge_backend.boundary.db.models.chunk_model import ChunkModel, EmbeddingStatus
from knowledge_backend.observability.log_utils import truncate_error

# Chunk types whose content is written prose (used to sample a document for context analysis)
TEXTUAL_CHUNK_TYPES = ("text", "header", "list", "cover_page", "notes_disclosure")


class ChunkCRUD(BaseCRUD[ChunkModel]):
    """
    CRUD operations for ChunkModel.

    The guarded column is embedding_status.
    """

    status_field = "embedding_status"

    def __init__(self) -> None:
        """Initialize ChunkCRUD with ChunkModel."""
        super().__init__(ChunkModel)

    async def add_chunks(
        self,
        session: AsyncSession,
        chunks: Sequence[dict[str, Any]],
    ) -> list[ChunkModel]:
        """
        Insert chunks in the caller's transaction.

        Args:
            session: Async database session
            chunks: Column values per chunk

        Returns:
            Created ChunkModels with ids assigned
        """
        instances = [ChunkModel(**values) for values in chunks]
        session.add_all(instances)
        await session.flush()
        return instances

    async def claim_pending(
        self,
        session: AsyncSession,
        document_id: UUID | None,
        limit: int,
    ) -> list[ChunkModel]:
        """
        Claim up to `limit` pending chunks, one guarded update per row.

        Rows another drain claimed in the meantime are skipped, so every
        returned chunk belongs to this caller alone.

        Args:
            session: Async database session
            document_id: Restrict to one document (None for the global backlog)
            limit: Maximum number of chunks to claim

        Returns:
            Claimed ChunkModels ordered by document and chunk_index
        """
        stmt = select(ChunkModel.id).where(ChunkModel.embedding_status == EmbeddingStatus.PENDING)
        if document_id is not None:
            stmt = stmt.where(ChunkModel.document_id == document_id)
        stmt = stmt.order_by(ChunkModel.document_id, ChunkModel.chunk_index).limit(limit)
        candidate_ids = (await session.execute(stmt)).scalars().all()

        claimed_ids = [
            chunk_id
            for chunk_id in candidate_ids
            if await self.compare_and_set(
                session,
                chunk_id,
                EmbeddingStatus.PENDING,
                embedding_status=EmbeddingStatus.PROCESSING,
            )
        ]
        if not claimed_ids:
            return []
        return list(await self.get_by_ids(session, claimed_ids))

    async def reset_stale_processing(self, session: AsyncSession, older_than: datetime) -> list[UUID]:
        """
        Hand chunks claimed by a vanished drain back to the pending pool.

        Each row moves by its own guarded update, so a drain that finishes
        the chunk concurrently keeps its result.

        Args:
            session: Async database session
            older_than: Cutoff on updated_at (set by the claim)

        Returns:
            Ids of the chunks returned to PENDING
        """
        stmt = select(ChunkModel.id).where(
            ChunkModel.embedding_status == EmbeddingStatus.PROCESSING,
            ChunkModel.updated_at < older_than,
        )
        stale_ids = (await session.execute(stmt)).scalars().all()
        return [
            chunk_id
            for chunk_id in stale_ids
            if await self.compare_and_set(
                session,
                chunk_id,
                EmbeddingStatus.PROCESSING,
                embedding_status=EmbeddingStatus.PENDING,
            )
        ]

    async def mark_ready(
        self,
        session: AsyncSession,
        chunk_id: UUID,
        vector: list[float],
    ) -> bool:
        """
        Store an embedding and mark the chunk ready.

        Args:
            session: Async database session
            chunk_id: Chunk UUID
            vector: Embedding of the configured dimension

        Returns:
            True if the chunk moved from PROCESSING to READY
        """
        return await self.compare_and_set(
            session,
            chunk_id,
            EmbeddingStatus.PROCESSING,
            embedding_status=EmbeddingStatus.READY,
            embedding=vector,
            embedding_error=None,
            embedded_at=utc_now(),
        )

    async def mark_failed(
        self,
        session: AsyncSession,
        chunk_id: UUID,
        error: BaseException | str,
        expected: tuple[EmbeddingStatus, ...] = (
            EmbeddingStatus.PROCESSING,
            EmbeddingStatus.WAITING_ENRICHMENT,
        ),
    ) -> bool:
        """
        Mark a chunk as failed; failed chunks are not retried automatically.

        Args:
            session: Async database session
            chunk_id: Chunk UUID
            error: Embedding or enrichment failure
            expected: Statuses the chunk may be in

        Returns:
            True if the chunk moved to FAILED
        """
        return await self.compare_and_set(
            session,
            chunk_id,
            expected,
            embedding_status=EmbeddingStatus.FAILED,
            embedding_error=truncate_error(error),
        )

    async def complete_enrichment(
        self,
        session: AsyncSession,
        chunk_id: UUID,
        description: str,
    ) -> bool:
        """
        Write a visual description into a chunk and queue it for embedding.

        Args:
            session: Async database session
            chunk_id: Chunk UUID
            description: Vision annotator output

        Returns:
            True if the chunk moved from WAITING_ENRICHMENT to PENDING
        """
        return await self.compare_and_set(
            session,
            chunk_id,
            EmbeddingStatus.WAITING_ENRICHMENT,
            embedding_status=EmbeddingStatus.PENDING,
            content=description,
            original_content=description,
        )

    async def count_by_status(
        self,
        session: AsyncSession,
        document_id: UUID,
    ) -> dict[EmbeddingStatus, int]:
        """
        Count a document's chunks per embedding status.

        Args:
            session: Async database session
            document_id: Owning document UUID

        Returns:
            Mapping with every EmbeddingStatus present (zero when absent)
        """
        stmt = (
            select(ChunkModel.embedding_status, func.count())
            .where(ChunkModel.document_id == document_id)
            .group_by(ChunkModel.embedding_status)
        )
        result = await session.execute(stmt)
        counts = {status: 0 for status in EmbeddingStatus}
        for status, count in result.all():
            counts[status] = count
        return counts

    async def count_for_document(self, session: AsyncSession, document_id: UUID) -> int:
        """Total number of chunks of a document."""
        stmt = select(func.count()).select_from(ChunkModel).where(ChunkModel.document_id == document_id)
        result = await session.execute(stmt)
        return result.scalar_one()

    async def has_pending(self, session: AsyncSession, document_id: UUID) -> bool:
        """Whether a document still has chunks waiting for the Embedding Worker."""
        stmt = (
            select(ChunkModel.id)
            .where(
                ChunkModel.document_id == document_id,
                ChunkModel.embedding_status == EmbeddingStatus.PENDING,
            )
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_by_ids(
        self,
        session: AsyncSession,
        chunk_ids: Sequence[UUID],
    ) -> Sequence[ChunkModel]:
        """
        Retrieve chunks by id.

        Args:
            session: Async database session
            chunk_ids: Chunk UUIDs

        Returns:
            Sequence of ChunkModels ordered by document and chunk_index
        """
        if not chunk_ids:
            return []
        stmt = (
            select(ChunkModel)
            .where(ChunkModel.id.in_(list(chunk_ids)))
            .order_by(ChunkModel.document_id, ChunkModel.chunk_index)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_by_document(
        self,
        session: AsyncSession,
        document_id: UUID,
    ) -> Sequence[ChunkModel]:
        """
        Retrieve all chunks of a document in ordinal order.

        Args:
            session: Async database session
            document_id: Owning document UUID

        Returns:
            Sequence of ChunkModels ordered by chunk_index
        """
        stmt = (
            select(ChunkModel)
            .where(ChunkModel.document_id == document_id)
            .order_by(ChunkModel.chunk_index)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def documents_with_pending(self, session: AsyncSession) -> list[UUID]:
        """Distinct ids of documents that have pending chunks."""
        stmt = (
            select(ChunkModel.document_id)
            .where(ChunkModel.embedding_status == EmbeddingStatus.PENDING)
            .distinct()
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def get_ready_ids(
        self,
        session: AsyncSession,
        document_ids: Sequence[UUID] | None = None,
    ) -> list[UUID]:
        """
        Ids of embedded chunks, optionally scoped to documents.

        Args:
            session: Async database session
            document_ids: Restrict to these documents (None for all)

        Returns:
            List of chunk UUIDs
        """
        stmt = select(ChunkModel.id).where(ChunkModel.embedding_status == EmbeddingStatus.READY)
        if document_ids is not None:
            stmt = stmt.where(ChunkModel.document_id.in_(list(document_ids)))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def get_text_sample(
        self,
        session: AsyncSession,
        document_id: UUID,
        max_chars: int,
    ) -> str:
        """
        Leading prose of a document, used for domain context analysis.

        Args:
            session: Async database session
            document_id: Owning document UUID
            max_chars: Maximum characters to return

        Returns:
            str: Concatenated textual chunk content, truncated to max_chars
        """
        stmt = (
            select(ChunkModel.content)
            .where(
                ChunkModel.document_id == document_id,
                ChunkModel.chunk_type.in_(TEXTUAL_CHUNK_TYPES),
            )
            .order_by(ChunkModel.chunk_index)
        )
        result = await session.execute(stmt)
        parts: list[str] = []
        total = 0
        for content in result.scalars():
            if not content:
                continue
            parts.append(content)
            total += len(content) + 1
            if total >= max_chars:
                break
        return "\n".join(parts)[:max_chars]


chunk_crud = ChunkCRUD()
