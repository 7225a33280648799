"""
Result models for hybrid retrieval.

Dependencies: pydantic
System role: Return types of the Query Expansion Cache and Hybrid Search Engine
"""

import enum
import uuid

from pydantic import BaseModel, Field

from knowledge_backend.boundary.db.models.query_expansion_model import ExpansionSource


class MatchType(str, enum.Enum):
    """Which search leg found a chunk."""

    SEMANTIC = "semantic"
    KEYWORD = "keyword"
    HYBRID = "hybrid"


class ExpandedQuery(BaseModel):
    """A query after expansion."""

    original: str = Field(description="Query as submitted")
    expanded: str = Field(description="Query used for embedding and keyword search")
    terms: list[str] = Field(default_factory=list, description="Keyword search terms")
    source: ExpansionSource
    cached: bool = False


class RankedCandidate(BaseModel):
    """A merged candidate before chunk content is loaded."""

    chunk_id: uuid.UUID
    match_type: MatchType
    similarity: float | None = None
    keyword_rank: float | None = None
    base_score: float
    boost: float = 1.0
    score: float = 0.0


class SearchResult(BaseModel):
    """One ranked chunk returned to the answering model."""

    chunk_id: uuid.UUID
    document_id: uuid.UUID
    document_name: str
    content: str
    chunk_type: str
    page_number: int | None = None
    heading_path: list[str] = Field(default_factory=list)
    score: float = Field(description="Final score after intent boost")
    base_score: float = Field(description="Score before intent boost")
    boost: float = Field(default=1.0, description="Intent multiplier applied")
    match_type: MatchType
