from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from knowledge_backend.api.deps.dependencies import get_search_service
from knowledge_backend.api.main import create_app
from knowledge_backend.core.exceptions import RetrievalError, ValidationError
from knowledge_backend.core.retrieval.models import MatchType, SearchResult


@pytest.fixture
def mock_search_service():
    return AsyncMock()


@pytest.fixture
def client(mock_search_service):
    app = create_app()
    app.dependency_overrides[get_search_service] = lambda: mock_search_service
    return TestClient(app)


def _result(content="| Total assets | 1,200 |"):
    return SearchResult(
        chunk_id=uuid4(),
        document_id=uuid4(),
        document_name="annual-report.pdf",
        content=content,
        chunk_type="balance_sheet",
        page_number=42,
        score=1.05,
        base_score=0.42,
        boost=2.5,
        match_type=MatchType.HYBRID,
    )


def test_search(client, mock_search_service):
    agent_id = uuid4()
    mock_search_service.search.return_value = [_result()]

    response = client.post(
        "/api/v1/search",
        json={"agent_id": str(agent_id), "query": "total assets 2023", "limit": 3},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["context"] is None
    assert data["results"][0]["chunk_type"] == "balance_sheet"
    assert data["results"][0]["score"] == 1.05
    assert data["results"][0]["match_type"] == "hybrid"
    mock_search_service.search.assert_awaited_once_with(
        agent_id=agent_id,
        query="total assets 2023",
        document_name=None,
        limit=3,
        agent_instructions=None,
    )


def test_search_with_context(client, mock_search_service):
    mock_search_service.search.return_value = [_result()]

    response = client.post(
        "/api/v1/search",
        json={"agent_id": str(uuid4()), "query": "total assets 2023", "include_context": True},
    )

    assert response.status_code == 200
    assert response.json()["context"] == (
        "[Chunk 1] Document: annual-report.pdf | Type: balance_sheet | Similarity: 42.0%\n"
        "| Total assets | 1,200 |"
    )


def test_search_empty_query(client, mock_search_service):
    mock_search_service.search.side_effect = ValidationError("Query must not be empty", field="query")

    response = client.post("/api/v1/search", json={"agent_id": str(uuid4()), "query": " "})

    assert response.status_code == 422


def test_search_backend_unavailable(client, mock_search_service):
    mock_search_service.search.side_effect = RetrievalError("Both vector and keyword search failed")

    response = client.post("/api/v1/search", json={"agent_id": str(uuid4()), "query": "revenue"})

    assert response.status_code == 503
    assert response.json()["detail"] == "Both vector and keyword search failed"
