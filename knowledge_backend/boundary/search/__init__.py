"""
Search boundary: vector and keyword search over the chunk store.

Exports:
  - SearchBackend, SearchScope, VectorHit, KeywordHit, ChunkRecord: Contract
  - PgSearchBackend: pgvector + PostgreSQL full-text implementation

Dependencies: sqlalchemy, pgvector
System role: Candidate generation for hybrid retrieval
"""

from knowledge_backend.boundary.search.base_search import (
    ChunkRecord,
    KeywordHit,
    SearchBackend,
    SearchScope,
    VectorHit,
)
from knowledge_backend.boundary.search.pgvector_search import PgSearchBackend, build_tsquery

__all__ = [
    "ChunkRecord",
    "KeywordHit",
    "SearchBackend",
    "SearchScope",
    "VectorHit",
    "PgSearchBackend",
    "build_tsquery",
]
