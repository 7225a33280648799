"""
Ingestion service orchestrator.

Registers documents, starts their batch chain and reports their progress.
The heavy lifting happens in the ingestion pipeline; this service only
creates the ledger rows and kicks off batch 0.

Dependencies: sqlalchemy, knowledge_backend.boundary.db, knowledge_backend.core.ingestion
System role: Document ingestion entry point for the API
"""

import logging
from typing import Any, Sequence
from uuid import UUID

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_backend.boundary.db.CRUD.batch_crud import batch_crud
from knowledge_backend.boundary.db.CRUD.chunk_crud import chunk_crud
from knowledge_backend.boundary.db.CRUD.document_crud import document_crud
from knowledge_backend.boundary.db.models.document_model import DocumentStatus, SourceType
from knowledge_backend.core.exceptions import DocumentNotFoundError, ValidationError
from knowledge_backend.core.ingestion.agent_sync import sync_agent
from knowledge_backend.core.ingestion.pipeline import IngestionPipeline
from knowledge_backend.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

FILE_ONLY_SOURCES = (SourceType.PDF, SourceType.IMAGE)


class DocumentStatusReport(BaseModel):
    """Snapshot of a document's progress through ingestion."""

    document_id: UUID
    name: str
    source_type: SourceType
    status: DocumentStatus
    page_count: int | None = None
    attempt_count: int = 0
    batches: dict[str, int] = Field(description="Batch count per batch status")
    chunks: dict[str, int] = Field(description="Chunk count per embedding status")
    last_error: str | None = None
    error_category: str | None = None
    processing_report: dict[str, Any] | None = None


class IngestionService:
    """
    Ingestion service orchestrator.

    Uses the request session for document metadata and the pipeline's
    components (which open their own sessions) for batch processing.
    """

    def __init__(self, db: AsyncSession, pipeline: IngestionPipeline) -> None:
        """
        Initialize ingestion service.

        Args:
            db: AsyncSession for document metadata
            pipeline: Wired ingestion components
        """
        self.db = db
        self.pipeline = pipeline

    async def ingest(
        self,
        name: str,
        source_type: SourceType | str,
        file_path: str | None = None,
        text: str | None = None,
    ) -> UUID:
        """
        Register a document and schedule its first batch.

        Steps:
        1. Validate input and create the document (status ingested)
        2. Count pages through the extraction adapter
        3. Split into batches (document moves to processing)
        4. Schedule batch 0; the chain continues from there

        Args:
            name: Display name (used as the search pre-filter)
            source_type: Source format
            file_path: Location of the source file
            text: Inline source for text formats

        Returns:
            UUID: Created document ID

        Raises:
            ValidationError: Missing name or source, or unsupported source type
            ExtractionError: When the page count cannot be read (document failed)
        """
        if not name or not name.strip():
            raise ValidationError("Document name is required", field="name")
        try:
            source_type = SourceType(source_type)
        except ValueError as e:
            raise ValidationError(f"Unsupported source type: {source_type}", field="source_type") from e
        if file_path is None and text is None:
            raise ValidationError("Either file_path or text is required", field="file_path")
        if text is not None and source_type in FILE_ONLY_SOURCES:
            raise ValidationError(
                f"{source_type.value} documents must be provided as a file",
                field="text",
            )

        document = await document_crud.create(
            self.db,
            name=name.strip(),
            source_type=source_type,
            file_path=file_path,
            source_text=text,
            status=DocumentStatus.INGESTED,
        )
        # Commit before any extraction call so the document can be polled
        await self.db.commit()
        document_id = document.id
        # The pipeline updates the row through its own sessions from here on
        self.db.expunge(document)

        orchestrator = self.pipeline.orchestrator
        try:
            page_count = await orchestrator.count_pages(document)
        except Exception as e:
            log_exception_with_context(
                logger,
                f"{__name__}:ingest - Could not count pages, document failed",
                e,
                document_id=str(document_id),
            )
            await document_crud.mark_failed(self.db, document_id, e)
            await self.db.commit()
            raise

        batch_count = await orchestrator.split_into_batches(document_id, page_count)
        await orchestrator.schedule_first_batch(document_id)

        logger.info(
            f"{__name__}:ingest - Document registered",
            extra={
                "document_id": str(document_id),
                "source_type": source_type.value,
                "page_count": page_count,
                "batch_count": batch_count,
            },
        )
        return document_id

    async def get_document_status(self, document_id: UUID) -> DocumentStatusReport:
        """
        Report a document's status with batch and chunk breakdowns.

        Args:
            document_id: Document UUID

        Returns:
            DocumentStatusReport: Current snapshot

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        document = await document_crud.get_by_id(self.db, document_id)
        if document is None:
            raise DocumentNotFoundError(str(document_id))

        batches = await batch_crud.count_by_status(self.db, document_id)
        chunks = await chunk_crud.count_by_status(self.db, document_id)

        return DocumentStatusReport(
            document_id=document.id,
            name=document.name,
            source_type=document.source_type,
            status=document.status,
            page_count=document.page_count,
            attempt_count=document.attempt_count,
            batches={status.value: count for status, count in batches.items()},
            chunks={status.value: count for status, count in chunks.items()},
            last_error=document.last_error,
            error_category=document.error_category,
            processing_report=document.processing_report,
        )

    async def sync_agent(
        self,
        agent_id: UUID,
        document_ids: Sequence[UUID] | None = None,
    ) -> int:
        """
        Link the ready chunks of documents to an agent.

        Args:
            agent_id: Agent identifier
            document_ids: Restrict to these documents (None for every document)

        Returns:
            int: Number of new links

        Raises:
            DocumentNotFoundError: If a named document does not exist
        """
        for document_id in document_ids or []:
            if not await document_crud.exists(self.db, document_id):
                raise DocumentNotFoundError(str(document_id))
        return await sync_agent(self.pipeline.session_factory, agent_id, document_ids)
