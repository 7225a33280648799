"""
Search API endpoints.

Routes:
- POST /search - Hybrid search over an agent's knowledge

Dependencies: knowledge_backend.application.services, knowledge_backend.models
System role: Retrieval HTTP API
"""

from fastapi import APIRouter, Depends, HTTPException

from knowledge_backend.api.deps import get_search_service
from knowledge_backend.application.services import SearchService
from knowledge_backend.core.exceptions import RetrievalError, ValidationError
from knowledge_backend.core.retrieval.context_formatter import format_chunks_for_context
from knowledge_backend.models.search import SearchRequest, SearchResponse

router = APIRouter(prefix="/search", tags=["search"])


@router.post("", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    search_service: SearchService = Depends(get_search_service),
) -> SearchResponse:
    """
    Search an agent's knowledge.

    Args:
        request: Agent, query, optional document filter and limit
        search_service: Injected SearchService

    Returns:
        SearchResponse: Ranked results, optionally with formatted context

    Raises:
        HTTPException(422): Empty query or invalid limit
        HTTPException(503): Search backend unavailable
    """
    try:
        results = await search_service.search(
            agent_id=request.agent_id,
            query=request.query,
            document_name=request.document_name,
            limit=request.limit,
            agent_instructions=request.agent_instructions,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except RetrievalError as e:
        raise HTTPException(status_code=503, detail=e.message)

    context = format_chunks_for_context(results) if request.include_context else None
    return SearchResponse(results=results, total=len(results), context=context)
