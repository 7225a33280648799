"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from knowledge_backend.boundary.db.CRUD import batch_crud, chunk_crud

    # Use singleton instances
    claimed = await batch_crud.claim(db, batch_id)

    # Or instantiate classes directly for custom behavior
    from knowledge_backend.boundary.db.CRUD import ChunkCRUD
    custom_crud = ChunkCRUD()
"""

from knowledge_backend.boundary.db.CRUD.base_crud import BaseCRUD
from knowledge_backend.boundary.db.CRUD.document_crud import DocumentCRUD, document_crud
from knowledge_backend.boundary.db.CRUD.batch_crud import BatchCRUD, batch_crud
from knowledge_backend.boundary.db.CRUD.chunk_crud import ChunkCRUD, chunk_crud
from knowledge_backend.boundary.db.CRUD.enrichment_crud import EnrichmentCRUD, enrichment_crud
from knowledge_backend.boundary.db.CRUD.agent_knowledge_crud import (
    AgentKnowledgeCRUD,
    agent_knowledge_crud,
)
from knowledge_backend.boundary.db.CRUD.query_expansion_crud import (
    QueryExpansionCRUD,
    query_expansion_crud,
)

__all__ = [
    "BaseCRUD",
    "DocumentCRUD",
    "document_crud",
    "BatchCRUD",
    "batch_crud",
    "ChunkCRUD",
    "chunk_crud",
    "EnrichmentCRUD",
    "enrichment_crud",
    "AgentKnowledgeCRUD",
    "agent_knowledge_crud",
    "QueryExpansionCRUD",
    "query_expansion_crud",
]
