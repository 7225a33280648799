"""
Embedding Worker.

Drains pending chunks in bounded cycles: claim a batch of chunks, embed them,
store vectors, then re-schedule itself while backlog remains instead of
looping inside one invocation.

Dependencies: sqlalchemy, knowledge_backend.boundary.db, knowledge_backend.boundary.llm
System role: Embedding stage of the ingestion pipeline
"""

import logging
import uuid
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from knowledge_backend.boundary.db.CRUD.chunk_crud import chunk_crud
from knowledge_backend.boundary.db.CRUD.document_crud import document_crud
from knowledge_backend.boundary.db.models.chunk_model import ChunkModel
from knowledge_backend.boundary.db.models.document_model import DocumentStatus
from knowledge_backend.boundary.llm.embedding_client import EmbeddingClient
from knowledge_backend.configs.ingestion import IngestionSettings
from knowledge_backend.core.ingestion.models import DrainReport
from knowledge_backend.core.ingestion.readiness import check_document_ready
from knowledge_backend.core.ingestion.scheduler import WorkScheduler
from knowledge_backend.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

HEADING_SEPARATOR = " > "


def build_embedding_input(content: str, heading_path: Sequence[str] | None) -> str:
    """
    Text sent to the embedding model: heading path, blank line, content.

    Args:
        content: Chunk content
        heading_path: Enclosing headings, outermost first

    Returns:
        str: Embedding input
    """
    headings = [heading for heading in (heading_path or []) if heading]
    if not headings:
        return content
    return f"{HEADING_SEPARATOR.join(headings)}\n\n{content}"


class EmbeddingWorker:
    """Embeds pending chunks and advances documents to ready."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        scheduler: WorkScheduler,
        embedding_client: EmbeddingClient,
        settings: IngestionSettings | None = None,
    ) -> None:
        """
        Initialize the worker.

        Args:
            session_factory: Session factory
            scheduler: Schedules continuation drains
            embedding_client: Embedding API client
            settings: Ingestion settings (defaults from environment)
        """
        self._session_factory = session_factory
        self._scheduler = scheduler
        self._embedding_client = embedding_client
        self._settings = settings or IngestionSettings()

    async def drain(self, document_id: uuid.UUID | None = None) -> DrainReport:
        """
        Run one drain cycle.

        Chunks are claimed one guarded update at a time, so concurrent drains
        never embed the same chunk twice. Failures are recorded on the chunk
        and not retried.

        Args:
            document_id: Restrict to one document (None for the global backlog)

        Returns:
            DrainReport: Counts, documents made ready and continuations scheduled
        """
        async with self._session_factory() as session:
            chunks = await chunk_crud.claim_pending(
                session, document_id, self._settings.embedding_batch_size
            )
            await session.commit()

        report = DrainReport(claimed=len(chunks))
        if chunks:
            await self._embed(chunks, report)

        touched = {chunk.document_id for chunk in chunks}
        if document_id is not None:
            touched.add(document_id)

        for touched_id in sorted(touched, key=str):
            if await self._continue_if_backlog(touched_id):
                report.continued.append(touched_id)
            elif await self.check_document_ready(touched_id):
                report.documents_ready.append(touched_id)

        logger.info(
            f"{__name__}:drain - Drain cycle finished",
            extra={
                "document_id": str(document_id) if document_id else None,
                "claimed": report.claimed,
                "embedded": report.embedded,
                "failed": report.failed,
            },
        )
        return report

    async def _embed(self, chunks: list[ChunkModel], report: DrainReport) -> None:
        for chunk in chunks:
            text = build_embedding_input(chunk.content, chunk.heading_path)
            try:
                vectors = await self._embedding_client.embed_texts([text])
            except Exception as e:
                log_exception_with_context(
                    logger,
                    f"{__name__}:_embed - Embedding failed",
                    e,
                    chunk_id=str(chunk.id),
                    document_id=str(chunk.document_id),
                )
                async with self._session_factory() as session:
                    if await chunk_crud.mark_failed(session, chunk.id, e):
                        report.failed += 1
                    await session.commit()
                continue

            async with self._session_factory() as session:
                if await chunk_crud.mark_ready(session, chunk.id, vectors[0]):
                    report.embedded += 1
                await session.commit()

    async def _continue_if_backlog(self, document_id: uuid.UUID) -> bool:
        if not self._settings.continuation_enabled:
            return False
        async with self._session_factory() as session:
            status = await document_crud.get_status(session, document_id)
            if status == DocumentStatus.FAILED:
                return False
            pending = await chunk_crud.has_pending(session, document_id)
        if pending:
            self._scheduler.schedule_drain(document_id)
        return pending

    async def check_document_ready(self, document_id: uuid.UUID) -> bool:
        """
        Move a chunked document to ready when nothing is left to embed.

        Args:
            document_id: Document UUID

        Returns:
            bool: True if this call performed the transition
        """
        return await check_document_ready(self._session_factory, document_id)
