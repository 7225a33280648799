"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), get_async_db(): Async connection management
  - DocumentModel, BatchModel, ChunkModel, EnrichmentItemModel: Job Ledger and Chunk Store
  - AgentKnowledgeModel, QueryExpansionModel: Retrieval scope and expansion cache
  - document_crud, batch_crud, chunk_crud, ...: CRUD operation singletons

Dependencies: sqlalchemy, pgvector, knowledge_backend.configs
System role: Database adapter providing persistent storage for the ingestion
ledger, the chunk store and the retrieval caches.
"""

from knowledge_backend.boundary.db.base import Base, TimestampMixin, UUIDMixin
from knowledge_backend.boundary.db.connection import (
    get_async_db,
    get_async_engine,
    get_async_session_factory,
)
from knowledge_backend.boundary.db.models import (
    AgentKnowledgeModel,
    BatchModel,
    BatchStatus,
    ChunkModel,
    DocumentModel,
    DocumentStatus,
    EmbeddingStatus,
    EnrichmentItemModel,
    EnrichmentStatus,
    ExpansionSource,
    QueryExpansionModel,
    SourceType,
)
from knowledge_backend.boundary.db.CRUD import (
    agent_knowledge_crud,
    batch_crud,
    chunk_crud,
    document_crud,
    enrichment_crud,
    query_expansion_crud,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Connection
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
    # Models
    "AgentKnowledgeModel",
    "BatchModel",
    "BatchStatus",
    "ChunkModel",
    "DocumentModel",
    "DocumentStatus",
    "EmbeddingStatus",
    "EnrichmentItemModel",
    "EnrichmentStatus",
    "ExpansionSource",
    "QueryExpansionModel",
    "SourceType",
    # CRUD singletons
    "agent_knowledge_crud",
    "batch_crud",
    "chunk_crud",
    "document_crud",
    "enrichment_crud",
    "query_expansion_crud",
]
