"""
Intent boost table lookups.

Dependencies: knowledge_backend.configs
System role: Chunk-type multipliers for hybrid ranking
"""

from typing import Mapping

from knowledge_backend.configs.retrieval import DEFAULT_BOOST_TABLE
from knowledge_backend.core.retrieval.intent import QueryIntent

DEFAULT_MULTIPLIER = 1.0

BoostTable = Mapping[str, Mapping[str, float]]


class IntentBoosts:
    """Multipliers for one intent; unknown chunk types get 1.0."""

    def __init__(self, intent: QueryIntent, table: BoostTable | None = None) -> None:
        table = DEFAULT_BOOST_TABLE if table is None else table
        self.intent = intent
        self._row = dict(table.get(intent.value, {}))

    def multiplier(self, chunk_type: str | None) -> float:
        if not chunk_type:
            return DEFAULT_MULTIPLIER
        return self._row.get(chunk_type, DEFAULT_MULTIPLIER)
