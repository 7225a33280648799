"""
Search backend contract.

Typed hits and records exchanged between the Hybrid Search Engine and the
index that stores chunk vectors and text.

Dependencies: pydantic
System role: Search backend interface for hybrid retrieval
"""

import uuid
from typing import Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, Field


class SearchScope(BaseModel):
    """Restricts a search to ready chunks actively linked to an agent."""

    agent_id: uuid.UUID
    document_name: str | None = Field(default=None, description="Exact document name pre-filter")


class VectorHit(BaseModel):
    """Semantic candidate."""

    chunk_id: uuid.UUID
    similarity: float = Field(description="Cosine similarity (1 - cosine distance)")


class KeywordHit(BaseModel):
    """Full-text candidate."""

    chunk_id: uuid.UUID
    rank: float = Field(description="ts_rank of the chunk for the query terms")


class ChunkRecord(BaseModel):
    """Chunk fields needed to build a search result."""

    chunk_id: uuid.UUID
    document_id: uuid.UUID
    document_name: str
    content: str
    original_content: str | None = None
    chunk_type: str = "text"
    page_number: int | None = None
    heading_path: list[str] = Field(default_factory=list)


@runtime_checkable
class SearchBackend(Protocol):
    """Index operations used by the Hybrid Search Engine."""

    async def vector_search(
        self,
        embedding: list[float],
        scope: SearchScope,
        threshold: float,
        limit: int,
    ) -> list[VectorHit]:
        """Nearest chunks by cosine similarity, best first, at or above threshold."""
        ...

    async def keyword_search(
        self,
        terms: Sequence[str],
        scope: SearchScope,
        limit: int,
    ) -> list[KeywordHit]:
        """Chunks matching any term, best ts_rank first."""
        ...

    async def fetch_chunks(self, chunk_ids: Sequence[uuid.UUID]) -> list[ChunkRecord]:
        """Load chunk records (order not guaranteed)."""
        ...
