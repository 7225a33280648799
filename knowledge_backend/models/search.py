"""
Search schemas.

Dependencies: pydantic
System role: Retrieval API contracts
"""

import uuid

from pydantic import BaseModel, Field

from knowledge_backend.core.retrieval.models import SearchResult


class SearchRequest(BaseModel):
    """Request schema for hybrid search."""

    agent_id: uuid.UUID
    query: str = Field(description="User query")
    document_name: str | None = Field(default=None, description="Exact document name filter")
    limit: int | None = Field(default=None, description="Maximum number of results")
    agent_instructions: str | None = Field(
        default=None,
        description="Agent system instructions, used to select the scoring profile",
    )
    include_context: bool = Field(
        default=False,
        description="Also return the results formatted as prompt context",
    )


class SearchResponse(BaseModel):
    """Ranked search results."""

    results: list[SearchResult]
    total: int
    context: str | None = None
