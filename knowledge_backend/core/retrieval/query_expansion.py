"""
Query Expansion Cache.

Expands search queries with financial synonyms. Expansions are cached by a
hash of the normalised query; a miss asks the LLM expander and falls back to
a static finance dictionary when the model is unavailable.

Dependencies: sqlalchemy, knowledge_backend.boundary.db, knowledge_backend.boundary.llm
System role: First step of hybrid retrieval
"""

import hashlib
import logging
import re

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from knowledge_backend.boundary.db.CRUD.query_expansion_crud import query_expansion_crud
from knowledge_backend.boundary.db.models.query_expansion_model import ExpansionSource
from knowledge_backend.boundary.llm.query_expander import LLMQueryExpander
from knowledge_backend.core.exceptions import QueryExpansionError, ValidationError
from knowledge_backend.core.retrieval.models import ExpandedQuery

logger = logging.getLogger(__name__)

QUERY_HASH_LENGTH = 32

FINANCE_EXPANSION_DICTIONARY: dict[str, list[str]] = {
    "ppne": ["property", "plant", "equipment", "net", "PP&E", "fixed assets"],
    "ppe": ["property", "plant", "equipment", "PP&E", "fixed assets"],
    "net ppne": ["net property plant equipment", "PP&E net", "fixed assets net"],
    "dpo": ["days", "payable", "outstanding", "accounts payable", "payment terms"],
    "dso": ["days", "sales", "outstanding", "accounts receivable", "collection"],
    "dio": ["days", "inventory", "outstanding", "inventory turnover"],
    "eps": ["earnings", "per", "share", "net income", "shares outstanding"],
    "ebitda": ["earnings", "before", "interest", "taxes", "depreciation", "amortization", "operating income"],
    "ebit": ["earnings", "before", "interest", "taxes", "operating income"],
    "roe": ["return", "on", "equity", "net income", "shareholders equity"],
    "roa": ["return", "on", "assets", "net income", "total assets"],
    "roic": ["return", "on", "invested", "capital"],
    "quick ratio": ["acid test", "current assets", "current liabilities", "inventory"],
    "current ratio": ["current assets", "current liabilities", "liquidity"],
    "d/e": ["debt", "to", "equity", "leverage", "financial leverage"],
    "p/e": ["price", "to", "earnings", "valuation", "multiple"],
    "fy": ["fiscal", "year", "annual", "yearly"],
    "ocf": ["operating", "cash", "flow", "cash from operations"],
    "fcf": ["free", "cash", "flow", "capital expenditure"],
    "capex": ["capital", "expenditure", "investment", "PP&E additions"],
    "cogs": ["cost", "of", "goods", "sold", "cost of sales", "cost of revenue"],
    "sga": ["selling", "general", "administrative", "operating expenses"],
    "r&d": ["research", "development", "R&D expense"],
    "goodwill": ["intangible", "assets", "acquisition"],
    "inventory": ["inventories", "stock", "merchandise"],
    "receivables": ["accounts receivable", "trade receivables", "AR"],
    "payables": ["accounts payable", "trade payables", "AP"],
    "debt securities": ["notes", "bonds", "debentures", "fixed income", "investments"],
    "restructuring": ["restructuring charges", "restructuring liability", "employee severance", "impairment"],
    "organic growth": ["organic", "excluding acquisitions", "excluding M&A", "core growth"],
    "segment": ["business segment", "operating segment", "division", "reportable segment"],
    "revenue growth": ["sales growth", "top line growth", "net sales change"],
}

_DICTIONARY_PATTERNS = [
    (re.compile(rf"\b{re.escape(term)}\b"), expansions)
    for term, expansions in FINANCE_EXPANSION_DICTIONARY.items()
]
_WORD_RE = re.compile(r"[a-z0-9]+")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_query(query: str) -> str:
    """Lower-case, trim and collapse whitespace."""
    return _WHITESPACE_RE.sub(" ", query.lower().strip())


def hash_query(query: str) -> str:
    """First 32 hex characters of the SHA-256 of the normalised query."""
    digest = hashlib.sha256(normalize_query(query).encode("utf-8")).hexdigest()
    return digest[:QUERY_HASH_LENGTH]


def expand_with_dictionary(query: str) -> str:
    """
    Append dictionary synonyms for every term found in the query.

    Args:
        query: User query

    Returns:
        str: Query followed by unique expansions, or the query unchanged
    """
    lowered = query.lower()
    expansions: list[str] = []
    for pattern, synonyms in _DICTIONARY_PATTERNS:
        if pattern.search(lowered):
            expansions.extend(synonyms)

    unique = list(dict.fromkeys(expansions))
    if not unique:
        return query
    return f"{query} {' '.join(unique)}"


def expansion_terms(original: str, expanded: str) -> list[str]:
    """
    Unique lower-cased word tokens for keyword search.

    Original query terms come first, then the added synonyms.
    """
    tokens = _WORD_RE.findall(original.lower()) + _WORD_RE.findall(expanded.lower())
    return list(dict.fromkeys(tokens))


class QueryExpansionCache:
    """Cached query expansion with an LLM expander and a dictionary fallback."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        expander: LLMQueryExpander | None = None,
    ) -> None:
        """
        Initialize the cache.

        Args:
            session_factory: Session factory
            expander: LLM expander (None always uses the dictionary)
        """
        self._session_factory = session_factory
        self._expander = expander

    async def expand(self, query: str) -> ExpandedQuery:
        """
        Expand a query, using the cache when possible.

        Args:
            query: User query

        Returns:
            ExpandedQuery: Expanded text, keyword terms and provenance

        Raises:
            ValidationError: When the query is empty
        """
        if not query or not query.strip():
            raise ValidationError("Query must not be empty", field="query")

        normalized = normalize_query(query)
        query_hash = hash_query(query)

        async with self._session_factory() as session:
            entry = await query_expansion_crud.get_by_hash(session, query_hash)
            if entry is not None:
                await query_expansion_crud.record_hit(session, query_hash)
                await session.commit()
                logger.info(
                    f"{__name__}:expand - Cache hit",
                    extra={"query_hash": query_hash, "source": entry.expansion_source.value},
                )
                return ExpandedQuery(
                    original=query,
                    expanded=entry.expanded_query,
                    terms=expansion_terms(query, entry.expanded_query),
                    source=entry.expansion_source,
                    cached=True,
                )

        expanded, source = await self._compute(query)

        try:
            async with self._session_factory() as session:
                await query_expansion_crud.put(session, query_hash, normalized, expanded, source)
        except SQLAlchemyError as e:
            logger.warning(
                f"{__name__}:expand - Could not cache expansion: {type(e).__name__}: {e}",
                extra={"query_hash": query_hash},
            )

        return ExpandedQuery(
            original=query,
            expanded=expanded,
            terms=expansion_terms(query, expanded),
            source=source,
            cached=False,
        )

    async def _compute(self, query: str) -> tuple[str, ExpansionSource]:
        if self._expander is not None:
            try:
                expanded = await self._expander.expand(query)
                return expanded, ExpansionSource.LLM
            except QueryExpansionError as e:
                logger.warning(
                    f"{__name__}:_compute - LLM expansion failed, using dictionary: {e}",
                )

        expanded = expand_with_dictionary(query)
        if expanded == query:
            return query, ExpansionSource.PASSTHROUGH
        return expanded, ExpansionSource.DICTIONARY
