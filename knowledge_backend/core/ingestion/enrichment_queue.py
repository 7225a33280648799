"""
Enrichment Queue.

Describes visual elements (images, tables rendered as images) with the vision
annotator and turns their chunks into regular pending chunks. Prompts are
tuned to the document's domain, detected once per document from its leading
text and cached on the document row.

Dependencies: sqlalchemy, knowledge_backend.boundary.db, knowledge_backend.boundary.llm
System role: Visual enrichment stage between chunk building and embedding
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from knowledge_backend.boundary.db.CRUD.chunk_crud import chunk_crud
from knowledge_backend.boundary.db.CRUD.document_crud import document_crud
from knowledge_backend.boundary.db.CRUD.enrichment_crud import enrichment_crud
from knowledge_backend.boundary.db.models.chunk_model import EmbeddingStatus
from knowledge_backend.boundary.db.models.enrichment_model import EnrichmentItemModel
from knowledge_backend.boundary.llm.context_analyzer import DocumentContext, DocumentContextAnalyzer
from knowledge_backend.boundary.llm.vision_annotator import VisionAnnotator
from knowledge_backend.configs.ingestion import IngestionSettings
from knowledge_backend.core.exceptions import EnrichmentError
from knowledge_backend.core.ingestion.models import EnrichmentReport
from knowledge_backend.core.ingestion.readiness import check_document_ready
from knowledge_backend.core.ingestion.scheduler import WorkScheduler
from knowledge_backend.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

BASE_PROMPTS: dict[str, str] = {
    "table_image": "Analyse this TABLE.",
    "image": "Analyse this CHART/FIGURE.",
}

DOMAIN_ENHANCEMENTS: dict[str, str] = {
    "trading": """SPECIFIC FOCUS FOR TRADING:
- Identify EVERY visible candlestick pattern (doji, hammer, engulfing, ...)
- Extract ALL visible price levels with decimal precision
- Document EVERY price/indicator interaction: position on the chart, exact price,
  indicator type (SMA, EMA, Bollinger, ...), direction and outcome (bounce, breakout, cross)
- Identify supports and resistances with exact levels
- Note volumes if visible
VERBOSITY: MAXIMUM - every number counts""",
    "finance": """SPECIFIC FOCUS FOR FINANCE:
- Extract ALL numeric values with their units
- Identify trends (increasing, decreasing, stable)
- Note percentages, changes and year-over-year comparisons
- Document legend and axes precisely
VERBOSITY: HIGH - numbers are critical""",
    "architecture": """SPECIFIC FOCUS FOR ARCHITECTURE:
- Identify every room or space with its dimensions
- Note orientation (North/South/East/West) if indicated
- Extract elevations and measurements in metres or feet
- Identify materials if specified
- Note scales, proportions and ratios
VERBOSITY: HIGH for measurements, MEDIUM for descriptions""",
    "medical": """SPECIFIC FOCUS FOR MEDICINE:
- Extract ALL diagnostic values with units
- Note reference ranges if present
- Identify anomalies against normal ranges
- Use the exact medical terminology
VERBOSITY: MAXIMUM - precision is critical""",
    "legal": """SPECIFIC FOCUS FOR LEGAL DOCUMENTS:
- Extract dates, reference numbers and citations
- Identify the parties involved
- Note key clauses
- Document signatures and stamps if visible
VERBOSITY: HIGH for references, MEDIUM for content""",
}


def build_visual_prompt(context: DocumentContext, element_type: str) -> str:
    """
    Build the vision prompt for one element.

    Args:
        context: Document context (domain, focus elements, terminology)
        element_type: "image" or "table_image"

    Returns:
        str: Prompt text
    """
    base_prompt = BASE_PROMPTS.get(element_type, BASE_PROMPTS["image"])
    enhancement = DOMAIN_ENHANCEMENTS.get(context.domain, "")
    terminology = ", ".join(context.terminology) or "general"
    focus = "\n".join(f"- {element}" for element in context.focus_elements) or "- General content"

    return f"""DOCUMENT CONTEXT: {(context.domain or "general").upper()}
Expected terminology: {terminology}

{base_prompt}

{enhancement}

ELEMENTS TO LOOK FOR SPECIFICALLY:
{focus}

REQUIRED OUTPUT:
- Structured markdown
- Tables in |...|...| format
- Every numeric value with maximum precision
- If a requested element is NOT present, state it explicitly
"""


class EnrichmentQueue:
    """Claims pending enrichment items and describes them one by one."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        scheduler: WorkScheduler,
        annotator: VisionAnnotator,
        context_analyzer: DocumentContextAnalyzer | None = None,
        settings: IngestionSettings | None = None,
    ) -> None:
        """
        Initialize the queue.

        Args:
            session_factory: Session factory
            scheduler: Schedules embedding drains and follow-up runs
            annotator: Vision annotator
            context_analyzer: Domain analyser (None always uses the generic context)
            settings: Ingestion settings (defaults from environment)
        """
        self._session_factory = session_factory
        self._scheduler = scheduler
        self._annotator = annotator
        self._context_analyzer = context_analyzer
        self._settings = settings or IngestionSettings()

    async def resolve_context(self, document_id: uuid.UUID) -> DocumentContext:
        """
        Cached document context, computed on first use.

        Analysis failures fall back to the generic context, which is not cached.

        Args:
            document_id: Document UUID

        Returns:
            DocumentContext: Context for prompt building
        """
        async with self._session_factory() as session:
            document = await document_crud.get_by_id(session, document_id)
            if document is not None and document.domain_context:
                return DocumentContext.model_validate(document.domain_context)
            sample = await chunk_crud.get_text_sample(
                session, document_id, self._settings.context_sample_chars
            )

        if self._context_analyzer is None or not sample.strip():
            return DocumentContext.fallback()

        try:
            context = await self._context_analyzer.analyze(sample)
        except EnrichmentError as e:
            logger.warning(
                f"{__name__}:resolve_context - Context analysis failed, using generic context: {e}",
                extra={"document_id": str(document_id)},
            )
            return DocumentContext.fallback()

        async with self._session_factory() as session:
            await document_crud.update_by_id(session, document_id, domain_context=context.model_dump())
            await session.commit()
        return context

    async def process_pending(
        self,
        limit: int | None = None,
        document_id: uuid.UUID | None = None,
    ) -> EnrichmentReport:
        """
        Claim and describe pending enrichment items.

        A failed item fails its chunk; the remaining items continue.

        Args:
            limit: Items to claim (defaults to enrichment_batch_size)
            document_id: Restrict to one document (None for all)

        Returns:
            EnrichmentReport: Counts and touched documents
        """
        limit = limit or self._settings.enrichment_batch_size
        async with self._session_factory() as session:
            items = await enrichment_crud.claim_pending(session, limit, document_id)
            await session.commit()

        report = EnrichmentReport(claimed=len(items))
        if not items:
            return report

        contexts: dict[uuid.UUID, DocumentContext] = {}
        completed_documents: set[uuid.UUID] = set()
        for item in items:
            if item.document_id not in contexts:
                contexts[item.document_id] = await self.resolve_context(item.document_id)
            if item.document_id not in report.documents:
                report.documents.append(item.document_id)

            if await self._enrich(item, contexts[item.document_id]):
                report.completed += 1
                completed_documents.add(item.document_id)
            else:
                report.failed += 1

        for touched in report.documents:
            if touched in completed_documents:
                self._scheduler.schedule_drain(touched)
            else:
                await check_document_ready(self._session_factory, touched)

        async with self._session_factory() as session:
            remaining = await enrichment_crud.count_pending(session, document_id)
        if remaining:
            self._scheduler.schedule_enrichment(document_id)

        logger.info(
            f"{__name__}:process_pending - Enrichment run finished",
            extra={
                "claimed": report.claimed,
                "completed": report.completed,
                "failed": report.failed,
                "remaining": remaining,
            },
        )
        return report

    async def _enrich(self, item: EnrichmentItemModel, context: DocumentContext) -> bool:
        prompt = build_visual_prompt(context, item.element_type)
        try:
            description = await self._annotator.describe(item.payload, item.media_type, prompt)
        except Exception as e:
            log_exception_with_context(
                logger,
                f"{__name__}:_enrich - Vision annotation failed",
                e,
                item_id=str(item.id),
                chunk_id=str(item.chunk_id),
            )
            async with self._session_factory() as session:
                await enrichment_crud.mark_failed(session, item.id, e)
                await chunk_crud.mark_failed(
                    session,
                    item.chunk_id,
                    e,
                    expected=(EmbeddingStatus.WAITING_ENRICHMENT,),
                )
                await session.commit()
            return False

        description = description[: self._settings.description_max_chars]
        async with self._session_factory() as session:
            await chunk_crud.complete_enrichment(session, item.chunk_id, description)
            await enrichment_crud.mark_completed(session, item.id, description)
            await session.commit()
        return True
