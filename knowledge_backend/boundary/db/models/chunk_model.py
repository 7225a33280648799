"""
Chunk ORM model (the Chunk Store).

A unit of retrievable content with its embedding and embedding status.
Shared by the ingestion pipeline (writer) and hybrid retrieval (reader).

Dependencies: sqlalchemy, pgvector, knowledge_backend.boundary.db.base
System role: Chunk Store
"""

import enum
import uuid
from datetime import datetime

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_backend.boundary.db.base import Base, TimestampMixin, UUIDMixin
from knowledge_backend.configs import get_settings

EMBEDDING_DIMENSION = get_settings().llm.embedding_dimension

# Chunk ordinals are batch_index * CHUNK_INDEX_STRIDE + position within the batch
CHUNK_INDEX_STRIDE = 10000


class EmbeddingStatus(str, enum.Enum):
    """
    Chunk embedding states.

    PENDING: Content ready, waiting for the Embedding Worker
    WAITING_ENRICHMENT: Visual element, waiting for its Enrichment Item
    PROCESSING: Claimed by one embedding drain
    READY: Embedding stored (never without a vector)
    FAILED: Embedding or enrichment failed (not retried automatically)
    """

    PENDING = "pending"
    WAITING_ENRICHMENT = "waiting_enrichment"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


# Statuses that still have work outstanding for a document
OPEN_EMBEDDING_STATUSES = (
    EmbeddingStatus.PENDING,
    EmbeddingStatus.WAITING_ENRICHMENT,
    EmbeddingStatus.PROCESSING,
)


class ChunkModel(Base, UUIDMixin, TimestampMixin):
    """
    Chunk ORM model.

    content is what gets embedded and ranked (an LLM summary for large
    tables); original_content is what the answering model receives.

    Attributes:
        document_id: Owning document
        batch_index: Batch that produced the chunk
        chunk_index: Ordinal within the document (batch_index * 10000 + position)
        page_number: Absolute page number (None for non-paginated sources)
        content: Text optimised for embedding
        original_content: Verbatim content returned to the language model
        chunk_type: Free-form semantic label (text, table, balance_sheet, visual, ...)
        heading_path: Enclosing headings, outermost first
        embedding_status: Embedding state
        embedding: Vector (None until READY)
        embedding_error: Last embedding/enrichment failure
        embedded_at: Time the embedding was stored

    Constraints:
        (document_id, chunk_index): UNIQUE

    Indexes (PostgreSQL only):
        ix_chunks_embedding_hnsw: HNSW cosine index for vector search
        ix_chunks_content_fts: GIN full-text index for keyword search
    """

    __tablename__ = "chunks"
    __table_args__ = (
        UniqueConstraint("document_id", "chunk_index", name="uq_chunks_document_index"),
        Index("ix_chunks_document_status", "document_id", "embedding_status"),
        Index(
            "ix_chunks_embedding_hnsw",
            "embedding",
            postgresql_using="hnsw",
            postgresql_with={"m": 16, "ef_construction": 64},
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ).ddl_if(dialect="postgresql"),
        Index(
            "ix_chunks_content_fts",
            text("to_tsvector('english', content)"),
            postgresql_using="gin",
        ).ddl_if(dialect="postgresql"),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    batch_index: Mapped[int] = mapped_column(Integer, nullable=False)
    chunk_index: Mapped[int] = mapped_column(Integer, nullable=False)
    page_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    original_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    chunk_type: Mapped[str] = mapped_column(String(64), nullable=False, default="text")
    heading_path: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    embedding_status: Mapped[EmbeddingStatus] = mapped_column(
        Enum(EmbeddingStatus, native_enum=False),
        nullable=False,
        default=EmbeddingStatus.PENDING,
    )
    embedding: Mapped[list[float] | None] = mapped_column(
        Vector(EMBEDDING_DIMENSION).with_variant(JSON(), "sqlite"),
        nullable=True,
    )
    embedding_error: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    embedded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
