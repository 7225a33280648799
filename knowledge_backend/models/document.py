"""
Document schemas.

Request/response schemas for document ingestion and status polling.

Dependencies: pydantic
System role: Document API contracts
"""

import uuid

from pydantic import BaseModel, Field

from knowledge_backend.boundary.db.models.document_model import DocumentStatus, SourceType


class IngestDocumentRequest(BaseModel):
    """Request schema for registering a document."""

    name: str = Field(min_length=1, max_length=255, description="Display name of the document")
    source_type: SourceType = Field(description="Source format")
    file_path: str | None = Field(default=None, description="Path to the source file")
    text: str | None = Field(default=None, description="Inline source for markdown or transcripts")


class DocumentResponse(BaseModel):
    """Response schema after registering a document."""

    document_id: uuid.UUID
    status: str = Field(description="Status right after registration")


class DocumentStatusResponse(BaseModel):
    """Progress of a document through ingestion."""

    document_id: uuid.UUID
    name: str
    source_type: SourceType
    status: DocumentStatus
    page_count: int | None = None
    attempt_count: int = 0
    batches: dict[str, int] = Field(description="Batch count per batch status")
    chunks: dict[str, int] = Field(description="Chunk count per embedding status")
    last_error: str | None = None
    error_category: str | None = None
    processing_report: dict | None = None


class AgentSyncRequest(BaseModel):
    """Request schema for linking documents to an agent."""

    document_ids: list[uuid.UUID] | None = Field(
        default=None,
        description="Documents to link (all ready documents when omitted)",
    )


class AgentSyncResponse(BaseModel):
    """Result of an agent knowledge sync."""

    agent_id: uuid.UUID
    links_created: int
