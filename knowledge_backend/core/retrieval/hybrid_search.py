"""
Hybrid Search Engine.

Answers a query for one agent by running semantic and keyword search in
parallel over the expanded query, merging the candidates, re-ranking them by
query intent and swapping summaries back to the verbatim content.

Dependencies: knowledge_backend.boundary.search, knowledge_backend.boundary.llm
System role: Retrieval entry point for answering agents
"""

import asyncio
import logging
import uuid
from typing import Sequence

from knowledge_backend.boundary.llm.embedding_client import EmbeddingClient
from knowledge_backend.boundary.search.base_search import (
    ChunkRecord,
    KeywordHit,
    SearchBackend,
    SearchScope,
    VectorHit,
)
from knowledge_backend.configs.retrieval import RetrievalSettings
from knowledge_backend.core.exceptions import (
    RetrievalError,
    SearchBackendError,
    ValidationError,
)
from knowledge_backend.core.retrieval.agent_profiles import AgentProfile
from knowledge_backend.core.retrieval.boost_table import IntentBoosts
from knowledge_backend.core.retrieval.intent import detect_intent
from knowledge_backend.core.retrieval.models import (
    ExpandedQuery,
    MatchType,
    RankedCandidate,
    SearchResult,
)
from knowledge_backend.core.retrieval.query_expansion import QueryExpansionCache
from knowledge_backend.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)


def merge_candidates(
    vector_hits: Sequence[VectorHit],
    keyword_hits: Sequence[KeywordHit],
    profile: AgentProfile | None = None,
) -> list[RankedCandidate]:
    """
    Merge both legs by chunk id, vector hits first.

    A chunk found by both legs is hybrid and keeps its similarity as base
    score; with a profile it also gains vocabulary_alignment x keyword rank.
    Keyword-only chunks score their ts_rank.

    Args:
        vector_hits: Semantic candidates, best first
        keyword_hits: Keyword candidates, best first
        profile: Agent profile of the caller

    Returns:
        list[RankedCandidate]: Unique candidates in merge order
    """
    merged: dict[uuid.UUID, RankedCandidate] = {}
    for hit in vector_hits:
        if hit.chunk_id in merged:
            continue
        merged[hit.chunk_id] = RankedCandidate(
            chunk_id=hit.chunk_id,
            match_type=MatchType.SEMANTIC,
            similarity=hit.similarity,
            base_score=hit.similarity,
        )

    for hit in keyword_hits:
        candidate = merged.get(hit.chunk_id)
        if candidate is None:
            merged[hit.chunk_id] = RankedCandidate(
                chunk_id=hit.chunk_id,
                match_type=MatchType.KEYWORD,
                keyword_rank=hit.rank,
                base_score=hit.rank,
            )
            continue
        if candidate.match_type == MatchType.SEMANTIC:
            candidate.match_type = MatchType.HYBRID
            candidate.keyword_rank = hit.rank
            if profile is not None:
                candidate.base_score += profile.weights.vocabulary_alignment * hit.rank

    return list(merged.values())


def rank_candidates(
    candidates: list[RankedCandidate],
    boosts: IntentBoosts,
    chunk_types: dict[uuid.UUID, str],
) -> list[RankedCandidate]:
    """
    Apply intent multipliers and sort by final score.

    The sort is stable, so equal scores keep merge order.

    Args:
        candidates: Merged candidates
        boosts: Multipliers for the detected intent
        chunk_types: chunk_type per candidate id

    Returns:
        list[RankedCandidate]: Candidates, best first
    """
    for candidate in candidates:
        candidate.boost = boosts.multiplier(chunk_types.get(candidate.chunk_id))
        candidate.score = candidate.base_score * candidate.boost
    return sorted(candidates, key=lambda c: c.score, reverse=True)


def swap_in_original(record: ChunkRecord) -> str:
    """Verbatim content when a chunk was embedded through a summary."""
    if record.original_content is not None and record.original_content != record.content:
        return record.original_content
    return record.content


class HybridSearchEngine:
    """Semantic + keyword retrieval with intent re-ranking."""

    def __init__(
        self,
        expansion_cache: QueryExpansionCache,
        backend: SearchBackend,
        embedding_client: EmbeddingClient,
        settings: RetrievalSettings | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            expansion_cache: Query Expansion Cache
            backend: Vector and keyword index
            embedding_client: Embeds the expanded query
            settings: Retrieval settings (defaults from environment)
        """
        self._expansion_cache = expansion_cache
        self._backend = backend
        self._embedding_client = embedding_client
        self._settings = settings or RetrievalSettings()

    def _resolve_limit(self, limit: int | None) -> int:
        limit = self._settings.default_limit if limit is None else limit
        if limit < 1:
            raise ValidationError("limit must be at least 1", field="limit")
        return min(limit, self._settings.max_limit)

    async def _vector_leg(
        self,
        expanded: ExpandedQuery,
        scope: SearchScope,
        candidate_limit: int,
    ) -> list[VectorHit]:
        embedding = await self._embedding_client.embed_query(expanded.expanded)
        return await asyncio.wait_for(
            self._backend.vector_search(
                embedding,
                scope,
                self._settings.similarity_threshold,
                candidate_limit,
            ),
            timeout=self._settings.search_timeout_seconds,
        )

    async def _keyword_leg(
        self,
        expanded: ExpandedQuery,
        scope: SearchScope,
        candidate_limit: int,
    ) -> list[KeywordHit]:
        if not expanded.terms:
            return []
        return await asyncio.wait_for(
            self._backend.keyword_search(expanded.terms, scope, candidate_limit),
            timeout=self._settings.search_timeout_seconds,
        )

    async def search(
        self,
        agent_id: uuid.UUID,
        query: str,
        document_name: str | None = None,
        limit: int | None = None,
        profile: AgentProfile | None = None,
    ) -> list[SearchResult]:
        """
        Search an agent's knowledge.

        Args:
            agent_id: Agent whose linked chunks are searched
            query: User query
            document_name: Exact document name pre-filter
            limit: Maximum results (defaults to default_limit, capped at max_limit)
            profile: Agent profile used in ranking

        Returns:
            list[SearchResult]: Ranked results, unique by chunk, at most `limit`

        Raises:
            ValidationError: Empty query or invalid limit
            RetrievalError: When both search legs fail or chunks cannot be loaded
        """
        limit = self._resolve_limit(limit)
        expanded = await self._expansion_cache.expand(query)
        scope = SearchScope(agent_id=agent_id, document_name=document_name)
        candidate_limit = limit * self._settings.candidate_multiplier

        vector_result, keyword_result = await asyncio.gather(
            self._vector_leg(expanded, scope, candidate_limit),
            self._keyword_leg(expanded, scope, candidate_limit),
            return_exceptions=True,
        )

        failures = 0
        vector_hits: list[VectorHit] = []
        keyword_hits: list[KeywordHit] = []
        for leg, result in (("vector", vector_result), ("keyword", keyword_result)):
            if isinstance(result, BaseException):
                failures += 1
                log_exception_with_context(
                    logger,
                    f"{__name__}:search - {leg} search failed, continuing without it",
                    result,
                    agent_id=str(agent_id),
                )
            elif leg == "vector":
                vector_hits = result
            else:
                keyword_hits = result

        if failures == 2:
            raise RetrievalError(
                "Both vector and keyword search failed",
                agent_id=str(agent_id),
                details={"vector_error": str(vector_result), "keyword_error": str(keyword_result)},
            )

        candidates = merge_candidates(vector_hits, keyword_hits, profile)
        if not candidates:
            logger.info(
                f"{__name__}:search - No candidates",
                extra={"agent_id": str(agent_id), "expansion_source": expanded.source.value},
            )
            return []

        try:
            records = await self._backend.fetch_chunks([c.chunk_id for c in candidates])
        except SearchBackendError as e:
            raise RetrievalError(f"Could not load chunks: {e}", agent_id=str(agent_id)) from e
        by_id = {record.chunk_id: record for record in records}

        intent = detect_intent(query)
        boosts = IntentBoosts(intent, self._settings.boost_table)
        ranked = rank_candidates(
            candidates,
            boosts,
            {chunk_id: record.chunk_type for chunk_id, record in by_id.items()},
        )

        results: list[SearchResult] = []
        seen: set[uuid.UUID] = set()
        for candidate in ranked:
            record = by_id.get(candidate.chunk_id)
            if record is None or candidate.chunk_id in seen:
                continue
            seen.add(candidate.chunk_id)
            results.append(
                SearchResult(
                    chunk_id=record.chunk_id,
                    document_id=record.document_id,
                    document_name=record.document_name,
                    content=swap_in_original(record),
                    chunk_type=record.chunk_type,
                    page_number=record.page_number,
                    heading_path=record.heading_path,
                    score=candidate.score,
                    base_score=candidate.base_score,
                    boost=candidate.boost,
                    match_type=candidate.match_type,
                )
            )
            if len(results) >= limit:
                break

        logger.info(
            f"{__name__}:search - Returned {len(results)} results",
            extra={
                "agent_id": str(agent_id),
                "intent": intent.value,
                "vector_hits": len(vector_hits),
                "keyword_hits": len(keyword_hits),
                "expansion_source": expanded.source.value,
                "expansion_cached": expanded.cached,
            },
        )
        return results
