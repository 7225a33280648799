"""
Hybrid retrieval.

Query Expansion Cache, intent detection and boosts, agent profiles and the
Hybrid Search Engine.
"""

from knowledge_backend.core.retrieval.agent_profiles import (
    AgentProfile,
    AgentProfileKind,
    ScoringWeights,
    resolve_agent_profile,
)
from knowledge_backend.core.retrieval.boost_table import IntentBoosts
from knowledge_backend.core.retrieval.context_formatter import format_chunks_for_context
from knowledge_backend.core.retrieval.hybrid_search import (
    HybridSearchEngine,
    merge_candidates,
    rank_candidates,
    swap_in_original,
)
from knowledge_backend.core.retrieval.intent import QueryIntent, detect_intent
from knowledge_backend.core.retrieval.models import (
    ExpandedQuery,
    MatchType,
    RankedCandidate,
    SearchResult,
)
from knowledge_backend.core.retrieval.query_expansion import (
    QueryExpansionCache,
    expand_with_dictionary,
    expansion_terms,
    hash_query,
    normalize_query,
)

__all__ = [
    "AgentProfile",
    "AgentProfileKind",
    "ExpandedQuery",
    "HybridSearchEngine",
    "IntentBoosts",
    "MatchType",
    "QueryExpansionCache",
    "QueryIntent",
    "RankedCandidate",
    "ScoringWeights",
    "SearchResult",
    "detect_intent",
    "expand_with_dictionary",
    "expansion_terms",
    "format_chunks_for_context",
    "hash_query",
    "merge_candidates",
    "normalize_query",
    "rank_candidates",
    "resolve_agent_profile",
    "swap_in_original",
]
