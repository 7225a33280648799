"""
Database models package.

Exports:
  - DocumentModel, DocumentStatus, SourceType
  - BatchModel, BatchStatus
  - ChunkModel, EmbeddingStatus
  - EnrichmentItemModel, EnrichmentStatus
  - AgentKnowledgeModel
  - QueryExpansionModel, ExpansionSource

Dependencies: sqlalchemy, pgvector, knowledge_backend.boundary.db.base
System role: Database model definitions for the Job Ledger and Chunk Store
"""

from knowledge_backend.boundary.db.models.document_model import (
    DocumentModel,
    DocumentStatus,
    SourceType,
)
from knowledge_backend.boundary.db.models.batch_model import BatchModel, BatchStatus
from knowledge_backend.boundary.db.models.chunk_model import (
    CHUNK_INDEX_STRIDE,
    OPEN_EMBEDDING_STATUSES,
    ChunkModel,
    EmbeddingStatus,
)
from knowledge_backend.boundary.db.models.enrichment_model import (
    EnrichmentItemModel,
    EnrichmentStatus,
)
from knowledge_backend.boundary.db.models.agent_knowledge_model import AgentKnowledgeModel
from knowledge_backend.boundary.db.models.query_expansion_model import (
    ExpansionSource,
    QueryExpansionModel,
)

__all__ = [
    "DocumentModel",
    "DocumentStatus",
    "SourceType",
    "BatchModel",
    "BatchStatus",
    "CHUNK_INDEX_STRIDE",
    "OPEN_EMBEDDING_STATUSES",
    "ChunkModel",
    "EmbeddingStatus",
    "EnrichmentItemModel",
    "EnrichmentStatus",
    "AgentKnowledgeModel",
    "ExpansionSource",
    "QueryExpansionModel",
]
