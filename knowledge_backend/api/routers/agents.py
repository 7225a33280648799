"""
Agent knowledge API endpoints.

Routes:
- POST /agents/{agent_id}/knowledge/sync - Link ready chunks to an agent

Dependencies: knowledge_backend.application.services, knowledge_backend.models
System role: Retrieval scope HTTP API
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from knowledge_backend.api.deps import get_ingestion_service
from knowledge_backend.application.services import IngestionService
from knowledge_backend.core.exceptions import DocumentNotFoundError
from knowledge_backend.models.document import AgentSyncRequest, AgentSyncResponse

router = APIRouter(prefix="/agents", tags=["agents"])


@router.post("/{agent_id}/knowledge/sync", response_model=AgentSyncResponse)
async def sync_agent_knowledge(
    agent_id: UUID,
    request: AgentSyncRequest,
    ingestion_service: IngestionService = Depends(get_ingestion_service),
) -> AgentSyncResponse:
    """
    Link the ready chunks of documents to an agent.

    Raises:
        HTTPException(404): A named document does not exist
    """
    try:
        created = await ingestion_service.sync_agent(agent_id, request.document_ids)
    except DocumentNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return AgentSyncResponse(agent_id=agent_id, links_created=created)
