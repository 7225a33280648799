"""
Agent knowledge link ORM model.

Many-to-many association between an external agent and a chunk. The Hybrid
Search Engine only considers chunks with an active link for the agent.

Dependencies: sqlalchemy, knowledge_backend.boundary.db.base
System role: Retrieval scope for agents
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from knowledge_backend.boundary.db.base import Base, TimestampMixin, UUIDMixin, utc_now


class AgentKnowledgeModel(Base, UUIDMixin, TimestampMixin):
    """
    Agent knowledge link.

    Attributes:
        agent_id: External agent identifier (agents live outside this service)
        chunk_id: Linked chunk
        is_active: Only active links are searchable
        synced_at: Last sync time

    Constraints:
        (agent_id, chunk_id): UNIQUE
    """

    __tablename__ = "agent_knowledge"
    __table_args__ = (
        UniqueConstraint("agent_id", "chunk_id", name="uq_agent_knowledge_agent_chunk"),
    )

    agent_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    chunk_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("chunks.id", ondelete="CASCADE"),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )
