"""
Document API endpoints.

Routes:
- POST /documents - Register a document and start batch ingestion
- GET /documents/{id} - Ingestion status with batch and chunk breakdowns

Dependencies: knowledge_backend.application.services, knowledge_backend.models
System role: Document HTTP API
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status

from knowledge_backend.api.deps import get_ingestion_service
from knowledge_backend.application.services import IngestionService
from knowledge_backend.boundary.db.models.document_model import DocumentStatus
from knowledge_backend.core.exceptions import (
    DocumentNotFoundError,
    ExtractionError,
    ValidationError,
)
from knowledge_backend.models.document import (
    DocumentResponse,
    DocumentStatusResponse,
    IngestDocumentRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_202_ACCEPTED)
async def ingest_document(
    request: IngestDocumentRequest,
    ingestion_service: IngestionService = Depends(get_ingestion_service),
) -> DocumentResponse:
    """
    Register a document and schedule its first batch.

    Processing continues in the background; poll GET /documents/{id}.

    Args:
        request: Name, source type and file path or inline text
        ingestion_service: Injected IngestionService

    Returns:
        DocumentResponse: Document ID and status

    Raises:
        HTTPException(422): Invalid input or unreadable source
    """
    try:
        document_id = await ingestion_service.ingest(
            name=request.name,
            source_type=request.source_type,
            file_path=request.file_path,
            text=request.text,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except ExtractionError as e:
        raise HTTPException(status_code=422, detail=f"Could not read document: {e.message}")

    return DocumentResponse(document_id=document_id, status=DocumentStatus.PROCESSING.value)


@router.get("/{document_id}", response_model=DocumentStatusResponse)
async def get_document_status(
    document_id: UUID,
    ingestion_service: IngestionService = Depends(get_ingestion_service),
) -> DocumentStatusResponse:
    """
    Get a document's ingestion progress.

    Args:
        document_id: Document UUID
        ingestion_service: Injected IngestionService

    Returns:
        DocumentStatusResponse: Status, batch counts and chunk counts

    Raises:
        HTTPException(404): Document not found
    """
    try:
        report = await ingestion_service.get_document_status(document_id)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return DocumentStatusResponse(**report.model_dump())
