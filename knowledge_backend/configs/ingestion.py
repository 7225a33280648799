"""
Ingestion pipeline configuration.

Batch sizing, retry caps, drain sizes and external call timeouts for the
Batch Orchestrator, Enrichment Queue and Embedding Worker.

Dependencies: pydantic, pydantic_settings
System role: Centralized ingestion pipeline configuration
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from knowledge_backend.configs.base import BaseSettings


class IngestionSettings(BaseSettings):
    """Settings for batch ingestion, enrichment and embedding."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="INGESTION_",
        case_sensitive=False,
        extra="ignore",
    )

    # Batching
    pages_per_batch: int = Field(
        default=10,
        ge=1,
        description="Pages per extraction batch (fixed for the lifetime of a document)",
    )
    max_batch_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per batch before the batch and its document are failed",
    )
    stale_batch_seconds: int = Field(
        default=900,
        description="Age after which a batch stuck in processing is released by reconciliation",
    )
    retry_delay_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Delay before a batch that failed transiently is attempted again",
    )

    # Chunk building
    atomic_element_threshold: int = Field(
        default=1500,
        description="Characters above which tables/code blocks are summarised for embedding",
    )

    # Enrichment
    enrichment_batch_size: int = Field(
        default=5,
        description="Enrichment items claimed per queue run",
    )
    max_enrichment_attempts: int = Field(
        default=3,
        ge=1,
        description="Claims per enrichment item before an abandoned item and its chunk are failed",
    )
    description_max_chars: int = Field(
        default=4000,
        description="Cap on vision annotator descriptions written into chunks",
    )
    context_sample_chars: int = Field(
        default=2000,
        description="Leading characters of a document used for domain context analysis",
    )

    # Embedding
    embedding_batch_size: int = Field(
        default=10,
        description="Chunks claimed per embedding drain cycle",
    )
    continuation_enabled: bool = Field(
        default=True,
        description="Let the embedding worker re-schedule itself while backlog remains",
    )

    # External calls
    extraction_timeout_seconds: float = Field(
        default=120.0,
        description="Timeout for one extraction adapter call",
    )
    external_call_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for embedding, vision and summarisation calls",
    )

    # Scheduling
    scheduler_backend: Literal["asyncio", "celery"] = Field(
        default="asyncio",
        description="Where the API process runs follow-up work: in-process tasks or Celery workers",
    )
