"""
Chunk Builder.

Turns the elements of one batch into chunks. Planning (ordering,
classification, summarising large tables and code blocks) happens before any
database write; writing adds the chunks and the enrichment items of visual
elements in the caller's transaction, so a visual chunk never exists without
its enrichment item.

Dependencies: knowledge_backend.boundary.db, knowledge_backend.boundary.llm
System role: Chunk creation step of the Batch Orchestrator
"""

import logging
import uuid
from collections import Counter

from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_backend.boundary.db.CRUD.chunk_crud import chunk_crud
from knowledge_backend.boundary.db.models.chunk_model import CHUNK_INDEX_STRIDE, EmbeddingStatus
from knowledge_backend.boundary.db.models.enrichment_model import (
    EnrichmentItemModel,
    EnrichmentStatus,
)
from knowledge_backend.boundary.extraction.base_extractor import (
    ElementType,
    ExtractedElement,
    PageRange,
)
from knowledge_backend.boundary.llm.summarizer import ElementSummarizer
from knowledge_backend.core.exceptions import ExtractionError
from knowledge_backend.core.ingestion.chunk_classifier import classify_chunk
from knowledge_backend.core.ingestion.models import ChunkBuildResult

logger = logging.getLogger(__name__)

FALLBACK_SUMMARIES: dict[ElementType, str] = {
    ElementType.TABLE: "Table with structured data",
    ElementType.CODE_BLOCK: "Code block",
}


class PlannedChunk(BaseModel):
    """A chunk ready to be written, with its enrichment payload for visuals."""

    position: int
    page_number: int | None = None
    content: str
    original_content: str | None = None
    chunk_type: str
    heading_path: list[str] = Field(default_factory=list)
    element_type: ElementType
    visual_payload: str | None = None
    media_type: str | None = None

    @property
    def is_visual(self) -> bool:
        return self.visual_payload is not None


def order_elements(elements: list[ExtractedElement]) -> list[ExtractedElement]:
    """
    Reading order: (page, y, x, extraction_order).

    Non-paginated elements (page None) sort before page 1.
    """
    return sorted(
        elements,
        key=lambda e: (e.page or 0, e.y, e.x, e.extraction_order),
    )


def validate_elements(
    elements: list[ExtractedElement],
    page_range: PageRange | None,
    batch_index: int,
) -> None:
    """
    Reject malformed parser output.

    Raises:
        ExtractionError: Non-retryable, for an element without payload or
            with a page outside the batch range
    """
    for element in elements:
        if not element.payload or not element.payload.strip():
            raise ExtractionError(
                f"Parser returned a {element.element_type.value} element without payload",
                batch_index=batch_index,
                retryable=False,
            )
        if page_range is not None and not page_range.contains(element.page):
            raise ExtractionError(
                f"Parser returned page {element.page} outside range {page_range.start}-{page_range.end}",
                batch_index=batch_index,
                retryable=False,
                details={"page": element.page},
            )


class ChunkBuilder:
    """Plans and writes the chunks of one batch."""

    def __init__(
        self,
        summarizer: ElementSummarizer | None,
        atomic_threshold: int = 1500,
    ) -> None:
        """
        Initialize the builder.

        Args:
            summarizer: Summariser for large atomic elements (None uses fallback summaries)
            atomic_threshold: Characters above which atomic elements are summarised
        """
        self._summarizer = summarizer
        self._atomic_threshold = atomic_threshold

    async def _summarize(self, element: ExtractedElement) -> str:
        if self._summarizer is None:
            return FALLBACK_SUMMARIES[element.element_type]
        try:
            return await self._summarizer.summarize(element.payload, element.element_type.value)
        except Exception as e:
            logger.warning(
                f"{__name__}:_summarize - Summary failed after retries, using fallback: {type(e).__name__}: {e}",
                extra={"element_type": element.element_type.value},
            )
            return FALLBACK_SUMMARIES[element.element_type]

    async def plan(
        self,
        elements: list[ExtractedElement],
        batch_index: int,
        page_range: PageRange | None = None,
    ) -> list[PlannedChunk]:
        """
        Order, validate, classify and summarise the elements of a batch.

        Args:
            elements: Parser output for the batch
            batch_index: Batch position in the document
            page_range: Batch page range (None for non-paginated sources)

        Returns:
            list[PlannedChunk]: One planned chunk per element, in reading order

        Raises:
            ExtractionError: Non-retryable, for malformed parser output
        """
        validate_elements(elements, page_range, batch_index)

        planned: list[PlannedChunk] = []
        for position, element in enumerate(order_elements(elements)):
            if element.is_visual:
                planned.append(
                    PlannedChunk(
                        position=position,
                        page_number=element.page,
                        content="",
                        chunk_type="visual",
                        heading_path=element.heading_path,
                        element_type=element.element_type,
                        visual_payload=element.payload,
                        media_type=element.media_type,
                    )
                )
                continue

            text = element.payload.strip()
            content = text
            if element.is_atomic and len(text) > self._atomic_threshold:
                content = await self._summarize(element)

            planned.append(
                PlannedChunk(
                    position=position,
                    page_number=element.page,
                    content=content,
                    original_content=text,
                    chunk_type=classify_chunk(text, element.element_type),
                    heading_path=element.heading_path,
                    element_type=element.element_type,
                )
            )
        return planned

    async def write(
        self,
        session: AsyncSession,
        document_id: uuid.UUID,
        batch_index: int,
        planned: list[PlannedChunk],
    ) -> ChunkBuildResult:
        """
        Add the planned chunks and enrichment items to the session.

        Does not commit; the caller commits the chunks together with the
        batch completion.

        Args:
            session: Async database session
            document_id: Owning document
            batch_index: Batch position in the document
            planned: Output of plan()

        Returns:
            ChunkBuildResult: Trace metrics for the batch
        """
        rows = [
            {
                "document_id": document_id,
                "batch_index": batch_index,
                "chunk_index": batch_index * CHUNK_INDEX_STRIDE + chunk.position,
                "page_number": chunk.page_number,
                "content": chunk.content,
                "original_content": chunk.original_content,
                "chunk_type": chunk.chunk_type,
                "heading_path": list(chunk.heading_path),
                "embedding_status": (
                    EmbeddingStatus.WAITING_ENRICHMENT if chunk.is_visual else EmbeddingStatus.PENDING
                ),
            }
            for chunk in planned
        ]
        chunks = await chunk_crud.add_chunks(session, rows)

        items = [
            EnrichmentItemModel(
                chunk_id=model.id,
                document_id=document_id,
                element_type=chunk.element_type.value,
                payload=chunk.visual_payload,
                media_type=chunk.media_type or "image/png",
                page_number=chunk.page_number,
                status=EnrichmentStatus.PENDING,
                attempt_count=0,
            )
            for chunk, model in zip(planned, chunks)
            if chunk.is_visual
        ]
        session.add_all(items)
        await session.flush()

        types = Counter(chunk.chunk_type for chunk in planned)
        visual_found = sum(1 for chunk in planned if chunk.is_visual)
        return ChunkBuildResult(
            chunks_created=len(chunks),
            visual_elements_found=visual_found,
            visual_elements_enqueued=len(items),
            chunk_types=dict(types),
        )
