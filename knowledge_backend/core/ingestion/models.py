"""
Result models for the ingestion pipeline.

Dependencies: pydantic
System role: Return types of the Batch Orchestrator, Chunk Builder,
Enrichment Queue and Embedding Worker
"""

import enum
import uuid

from pydantic import BaseModel, Field


class BatchOutcome(str, enum.Enum):
    """Result of one process_batch call."""

    COMPLETED = "completed"
    RETRY_SCHEDULED = "retry_scheduled"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class ChunkBuildResult(BaseModel):
    """Trace metrics of one batch's chunk building."""

    chunks_created: int = 0
    visual_elements_found: int = 0
    visual_elements_enqueued: int = 0
    chunk_types: dict[str, int] = Field(default_factory=dict)


class ReconcileReport(BaseModel):
    """What one reconciliation sweep repaired."""

    documents_reset: list[uuid.UUID] = Field(default_factory=list)
    documents_marked_ready: list[uuid.UUID] = Field(default_factory=list)
    drains_rescheduled: list[uuid.UUID] = Field(default_factory=list)
    batches_released: int = 0
    batches_failed: int = 0
    batches_rescheduled: int = 0
    documents_completed: list[uuid.UUID] = Field(default_factory=list)
    chunks_released: int = 0
    enrichment_released: int = 0
    enrichment_failed: int = 0
    enrichment_rescheduled: bool = False


class EnrichmentReport(BaseModel):
    """Outcome of one Enrichment Queue run."""

    claimed: int = 0
    completed: int = 0
    failed: int = 0
    documents: list[uuid.UUID] = Field(default_factory=list)


class DrainReport(BaseModel):
    """Outcome of one Embedding Worker drain."""

    claimed: int = 0
    embedded: int = 0
    failed: int = 0
    documents_ready: list[uuid.UUID] = Field(default_factory=list)
    continued: list[uuid.UUID] = Field(default_factory=list)
