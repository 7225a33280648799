"""
Search service orchestrator.

Resolves the agent profile from the agent's instructions, runs hybrid
search and formats results for the answering model.

Dependencies: knowledge_backend.core.retrieval
System role: Retrieval entry point for the API
"""

import logging
from uuid import UUID

from knowledge_backend.core.retrieval.agent_profiles import resolve_agent_profile
from knowledge_backend.core.retrieval.context_formatter import format_chunks_for_context
from knowledge_backend.core.retrieval.hybrid_search import HybridSearchEngine
from knowledge_backend.core.retrieval.models import SearchResult

logger = logging.getLogger(__name__)


class SearchService:
    """Thin orchestrator over the Hybrid Search Engine."""

    def __init__(self, engine: HybridSearchEngine) -> None:
        """
        Initialize search service.

        Args:
            engine: Hybrid Search Engine
        """
        self.engine = engine

    async def search(
        self,
        agent_id: UUID,
        query: str,
        document_name: str | None = None,
        limit: int | None = None,
        agent_instructions: str | None = None,
    ) -> list[SearchResult]:
        """
        Search an agent's knowledge.

        Args:
            agent_id: Agent whose linked chunks are searched
            query: User query
            document_name: Exact document name pre-filter
            limit: Maximum number of results
            agent_instructions: System instructions used to pick the agent profile

        Returns:
            list[SearchResult]: Ranked results

        Raises:
            ValidationError: Empty query or invalid limit
            RetrievalError: When the search backend is unavailable
        """
        profile = resolve_agent_profile(agent_instructions)
        results = await self.engine.search(
            agent_id,
            query,
            document_name=document_name,
            limit=limit,
            profile=profile,
        )
        logger.info(
            f"{__name__}:search - Returned {len(results)} results",
            extra={"agent_id": str(agent_id), "profile": profile.kind.value},
        )
        return results

    async def build_context(
        self,
        agent_id: UUID,
        query: str,
        document_name: str | None = None,
        limit: int | None = None,
        agent_instructions: str | None = None,
    ) -> str:
        """
        Search and format the results as prompt context.

        Returns:
            str: Formatted chunk blocks (empty string when nothing matched)
        """
        results = await self.search(
            agent_id,
            query,
            document_name=document_name,
            limit=limit,
            agent_instructions=agent_instructions,
        )
        return format_chunks_for_context(results)
