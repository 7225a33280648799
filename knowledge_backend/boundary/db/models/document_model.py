"""
Document ORM model.

One uploaded source moving through ingestion:
INGESTED → PROCESSING → CHUNKED → READY (or FAILED).

Dependencies: sqlalchemy, knowledge_backend.boundary.db.base
System role: Document-level record of the Job Ledger
"""

import enum

from sqlalchemy import Enum, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_backend.boundary.db.base import Base, TimestampMixin, UUIDMixin


class SourceType(str, enum.Enum):
    """Supported source formats."""

    PDF = "pdf"
    MARKDOWN = "markdown"
    IMAGE = "image"
    VIDEO_TRANSCRIPT = "video_transcript"


class DocumentStatus(str, enum.Enum):
    """
    Document processing lifecycle states.

    INGESTED: Uploaded, no batches yet (or reset by reconciliation)
    PROCESSING: Batches created, extraction in progress
    CHUNKED: Every batch completed, chunks awaiting enrichment/embedding
    READY: No chunk pending, at least one chunk embedded
    FAILED: A batch exhausted its retry budget (terminal)
    """

    INGESTED = "ingested"
    PROCESSING = "processing"
    CHUNKED = "chunked"
    READY = "ready"
    FAILED = "failed"


class DocumentModel(Base, UUIDMixin, TimestampMixin):
    """
    Document ORM model.

    The status column is only advanced through compare-and-set updates
    (see DocumentCRUD.transition_status); it is never blindly overwritten.

    Attributes:
        id: UUID primary key
        name: Display name, used as the document pre-filter at search time
        source_type: Format of the source (pdf/markdown/image/video_transcript)
        file_path: Location of the source file (None when source_text is used)
        source_text: Inline source for text formats (markdown, transcripts)
        status: Current lifecycle state
        page_count: Pages reported by the extraction adapter (1 for non-paginated)
        attempt_count: Total batch extraction attempts across all batches
        last_error: Last recorded failure (truncated)
        error_category: Category of last_error
        domain_context: Cached document context used for visual enrichment prompts
        processing_report: Aggregated batch metrics written when chunked
    """

    __tablename__ = "documents"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    source_type: Mapped[SourceType] = mapped_column(
        Enum(SourceType, native_enum=False),
        nullable=False,
    )

    file_path: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    source_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[DocumentStatus] = mapped_column(
        Enum(DocumentStatus, native_enum=False),
        nullable=False,
        default=DocumentStatus.INGESTED,
        index=True,
    )

    page_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_error: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    error_category: Mapped[str | None] = mapped_column(String(32), nullable=True)

    domain_context: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    processing_report: Mapped[dict | None] = mapped_column(JSON, nullable=True)
