"""
Enrichment item ORM model.

One image or table-as-image waiting for a vision description before its
chunk can be embedded.

Dependencies: sqlalchemy, knowledge_backend.boundary.db.base
System role: Enrichment Queue storage
"""

import enum
import uuid

from sqlalchemy import Enum, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_backend.boundary.db.base import Base, TimestampMixin, UUIDMixin


class EnrichmentStatus(str, enum.Enum):
    """
    Enrichment item states.

    PENDING: Waiting for a queue run
    PROCESSING: Claimed by one queue run
    COMPLETED: Description written into the chunk
    FAILED: Annotator failed; chunk marked failed
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class EnrichmentItemModel(Base, UUIDMixin, TimestampMixin):
    """
    Enrichment item ORM model.

    Created in the same transaction as its chunk; chunk_id is unique so a
    chunk never has more than one item.

    Attributes:
        chunk_id: Chunk updated on completion
        document_id: Owning document (used to group items per document context)
        element_type: Parser element kind (image, table_image)
        payload: Base64 image data
        media_type: MIME type of the payload
        page_number: Page the element came from
        status: Queue state
        description: Annotator output
        error_message: Last failure (truncated)
        attempt_count: Claims so far
    """

    __tablename__ = "enrichment_items"

    chunk_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chunks.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    document_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    element_type: Mapped[str] = mapped_column(String(64), nullable=False, default="image")
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    media_type: Mapped[str] = mapped_column(String(64), nullable=False, default="image/png")
    page_number: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[EnrichmentStatus] = mapped_column(
        Enum(EnrichmentStatus, native_enum=False),
        nullable=False,
        default=EnrichmentStatus.PENDING,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
