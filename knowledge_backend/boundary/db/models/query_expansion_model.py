"""
Query expansion cache ORM model.

Memoised query rewrites keyed by the hash of the normalised query text.
Entries never expire.

Dependencies: sqlalchemy, knowledge_backend.boundary.db.base
System role: Query Expansion Cache storage
"""

import enum

from sqlalchemy import Enum, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_backend.boundary.db.base import Base, TimestampMixin, UUIDMixin


class ExpansionSource(str, enum.Enum):
    """Where an expansion came from."""

    LLM = "llm"
    DICTIONARY = "dictionary"
    PASSTHROUGH = "passthrough"


class QueryExpansionModel(Base, UUIDMixin, TimestampMixin):
    """
    Query expansion cache entry.

    Attributes:
        query_hash: First 32 hex chars of SHA-256(normalised query), UNIQUE
        normalized_query: Normalised query text
        expanded_query: Original terms plus domain synonyms
        expansion_source: llm / dictionary / passthrough
        hit_count: Cache hits served
    """

    __tablename__ = "query_expansion_cache"

    query_hash: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)
    normalized_query: Mapped[str] = mapped_column(Text, nullable=False)
    expanded_query: Mapped[str] = mapped_column(Text, nullable=False)
    expansion_source: Mapped[ExpansionSource] = mapped_column(
        Enum(ExpansionSource, native_enum=False),
        nullable=False,
    )
    hit_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
