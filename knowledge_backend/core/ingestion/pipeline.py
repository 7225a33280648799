"""
Ingestion pipeline wiring.

Builds the Batch Orchestrator, Enrichment Queue and Embedding Worker around
one scheduler. Used by the API process (asyncio scheduler) and the Celery
workers (Celery scheduler).

Dependencies: knowledge_backend.boundary, knowledge_backend.core.ingestion
System role: Composition root for ingestion components
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from knowledge_backend.boundary.db.connection import get_async_session_factory
from knowledge_backend.boundary.extraction import get_extraction_adapter
from knowledge_backend.boundary.llm.context_analyzer import (
    DocumentContextAnalyzer,
    get_context_analyzer,
)
from knowledge_backend.boundary.llm.embedding_client import EmbeddingClient, get_embedding_client
from knowledge_backend.boundary.llm.summarizer import ElementSummarizer, get_summarizer
from knowledge_backend.boundary.llm.vision_annotator import VisionAnnotator, get_vision_annotator
from knowledge_backend.configs import get_settings
from knowledge_backend.configs.ingestion import IngestionSettings
from knowledge_backend.core.ingestion.batch_orchestrator import AdapterFactory, BatchOrchestrator
from knowledge_backend.core.ingestion.chunk_builder import ChunkBuilder
from knowledge_backend.core.ingestion.embedding_worker import EmbeddingWorker
from knowledge_backend.core.ingestion.enrichment_queue import EnrichmentQueue
from knowledge_backend.core.ingestion.scheduler import AsyncioWorkScheduler, WorkScheduler


@dataclass
class IngestionPipeline:
    """The three ingestion components sharing one scheduler."""

    session_factory: async_sessionmaker[AsyncSession]
    scheduler: WorkScheduler
    orchestrator: BatchOrchestrator
    enrichment_queue: EnrichmentQueue
    embedding_worker: EmbeddingWorker


def build_pipeline(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    scheduler: WorkScheduler | None = None,
    embedding_client: EmbeddingClient | None = None,
    annotator: VisionAnnotator | None = None,
    summarizer: ElementSummarizer | None = None,
    context_analyzer: DocumentContextAnalyzer | None = None,
    settings: IngestionSettings | None = None,
    adapter_factory: AdapterFactory = get_extraction_adapter,
) -> IngestionPipeline:
    """
    Wire the ingestion components.

    Missing collaborators are built from settings. An AsyncioWorkScheduler is
    bound to the components it runs.

    Args:
        session_factory: Session factory (defaults to the application factory)
        scheduler: Work scheduler (defaults to a new AsyncioWorkScheduler)
        embedding_client: Embedding API client
        annotator: Vision annotator
        summarizer: Summariser for large atomic elements
        context_analyzer: Document domain analyser
        settings: Ingestion settings
        adapter_factory: Parser factory

    Returns:
        IngestionPipeline: Wired components
    """
    settings = settings or get_settings().ingestion
    session_factory = session_factory or get_async_session_factory()
    scheduler = scheduler or AsyncioWorkScheduler()

    orchestrator = BatchOrchestrator(
        session_factory,
        scheduler,
        ChunkBuilder(summarizer or get_summarizer(), settings.atomic_element_threshold),
        settings=settings,
        adapter_factory=adapter_factory,
    )
    enrichment_queue = EnrichmentQueue(
        session_factory,
        scheduler,
        annotator or get_vision_annotator(),
        context_analyzer or get_context_analyzer(),
        settings=settings,
    )
    embedding_worker = EmbeddingWorker(
        session_factory,
        scheduler,
        embedding_client or get_embedding_client(),
        settings=settings,
    )

    if isinstance(scheduler, AsyncioWorkScheduler):
        scheduler.bind(orchestrator, embedding_worker, enrichment_queue)

    return IngestionPipeline(
        session_factory=session_factory,
        scheduler=scheduler,
        orchestrator=orchestrator,
        enrichment_queue=enrichment_queue,
        embedding_worker=embedding_worker,
    )
