"""
Batch ingestion and embedding pipeline.

Batch Orchestrator, Chunk Builder, Enrichment Queue, Embedding Worker and
the scheduler abstraction that chains them.
"""

from knowledge_backend.core.ingestion.agent_sync import sync_agent
from knowledge_backend.core.ingestion.batch_orchestrator import BatchOrchestrator, plan_page_ranges
from knowledge_backend.core.ingestion.chunk_builder import ChunkBuilder, PlannedChunk
from knowledge_backend.core.ingestion.chunk_classifier import (
    CLASSIFICATION_RULES,
    ClassificationRule,
    classify_chunk,
)
from knowledge_backend.core.ingestion.embedding_worker import EmbeddingWorker, build_embedding_input
from knowledge_backend.core.ingestion.enrichment_queue import EnrichmentQueue, build_visual_prompt
from knowledge_backend.core.ingestion.models import (
    BatchOutcome,
    ChunkBuildResult,
    DrainReport,
    EnrichmentReport,
    ReconcileReport,
)
from knowledge_backend.core.ingestion.readiness import check_document_ready
from knowledge_backend.core.ingestion.scheduler import AsyncioWorkScheduler, WorkScheduler

__all__ = [
    "AsyncioWorkScheduler",
    "BatchOrchestrator",
    "BatchOutcome",
    "CLASSIFICATION_RULES",
    "ChunkBuildResult",
    "ChunkBuilder",
    "ClassificationRule",
    "DrainReport",
    "EmbeddingWorker",
    "EnrichmentQueue",
    "EnrichmentReport",
    "PlannedChunk",
    "ReconcileReport",
    "WorkScheduler",
    "build_embedding_input",
    "build_visual_prompt",
    "check_document_ready",
    "classify_chunk",
    "plan_page_ranges",
    "sync_agent",
]
