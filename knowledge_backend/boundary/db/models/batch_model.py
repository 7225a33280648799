"""
Batch ORM model.

A contiguous page range of one document, processed as one extraction step.

Dependencies: sqlalchemy, knowledge_backend.boundary.db.base
System role: Batch-level record of the Job Ledger
"""

import enum
import uuid

from sqlalchemy import Enum, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_backend.boundary.db.base import Base, TimestampMixin, UUIDMixin


class BatchStatus(str, enum.Enum):
    """
    Batch execution states.

    PENDING: Waiting to be claimed (initial state and after a retryable failure)
    PROCESSING: Claimed by exactly one worker
    COMPLETED: Chunks written
    FAILED: Attempt budget exhausted or structural failure
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class BatchModel(Base, UUIDMixin, TimestampMixin):
    """
    Batch ORM model.

    Attributes:
        document_id: Owning document
        batch_index: Position in the document, contiguous from 0
        page_start: First page (1-indexed, inclusive); None for non-paginated sources
        page_end: Last page (1-indexed, inclusive); None for non-paginated sources
        status: Execution state
        attempt_count: Claims so far (incremented on every claim)
        last_error: Last recorded failure (truncated)
        error_category: Category of last_error
        metrics: chunks_created, visual_elements_found, visual_elements_enqueued,
                 processing_time_ms, chunk_types

    Constraints:
        (document_id, batch_index): UNIQUE
    """

    __tablename__ = "batches"
    __table_args__ = (
        UniqueConstraint("document_id", "batch_index", name="uq_batches_document_index"),
    )

    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    batch_index: Mapped[int] = mapped_column(Integer, nullable=False)
    page_start: Mapped[int | None] = mapped_column(Integer, nullable=True)
    page_end: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[BatchStatus] = mapped_column(
        Enum(BatchStatus, native_enum=False),
        nullable=False,
        default=BatchStatus.PENDING,
        index=True,
    )
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    error_category: Mapped[str | None] = mapped_column(String(32), nullable=True)
    metrics: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
