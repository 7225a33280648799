from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from knowledge_backend.api.deps.dependencies import get_ingestion_service
from knowledge_backend.api.main import create_app
from knowledge_backend.application.services.ingestion_service import DocumentStatusReport
from knowledge_backend.boundary.db.models import DocumentStatus, SourceType
from knowledge_backend.core.exceptions import (
    DocumentNotFoundError,
    ExtractionError,
    ValidationError,
)


@pytest.fixture
def mock_ingestion_service():
    return AsyncMock()


@pytest.fixture
def client(mock_ingestion_service):
    app = create_app()
    app.dependency_overrides[get_ingestion_service] = lambda: mock_ingestion_service
    return TestClient(app)


def test_ingest_document_accepted(client, mock_ingestion_service):
    document_id = uuid4()
    mock_ingestion_service.ingest.return_value = document_id

    response = client.post(
        "/api/v1/documents",
        json={"name": "annual-report.pdf", "source_type": "pdf", "file_path": "/data/annual-report.pdf"},
    )

    assert response.status_code == 202
    assert response.json() == {"document_id": str(document_id), "status": "processing"}
    mock_ingestion_service.ingest.assert_awaited_once_with(
        name="annual-report.pdf",
        source_type=SourceType.PDF,
        file_path="/data/annual-report.pdf",
        text=None,
    )


def test_ingest_document_invalid_source_type(client, mock_ingestion_service):
    response = client.post("/api/v1/documents", json={"name": "sheet", "source_type": "xlsx"})

    assert response.status_code == 422
    mock_ingestion_service.ingest.assert_not_called()


def test_ingest_document_validation_error(client, mock_ingestion_service):
    mock_ingestion_service.ingest.side_effect = ValidationError(
        "Either file_path or text is required", field="file_path"
    )

    response = client.post("/api/v1/documents", json={"name": "notes", "source_type": "markdown"})

    assert response.status_code == 422
    assert "file_path" in response.json()["detail"]


def test_ingest_document_unreadable_source(client, mock_ingestion_service):
    mock_ingestion_service.ingest.side_effect = ExtractionError(
        "File not found: /data/missing.pdf", retryable=False
    )

    response = client.post(
        "/api/v1/documents",
        json={"name": "missing.pdf", "source_type": "pdf", "file_path": "/data/missing.pdf"},
    )

    assert response.status_code == 422
    assert response.json()["detail"] == "Could not read document: File not found: /data/missing.pdf"


def test_get_document_status(client, mock_ingestion_service):
    document_id = uuid4()
    mock_ingestion_service.get_document_status.return_value = DocumentStatusReport(
        document_id=document_id,
        name="annual-report.pdf",
        source_type=SourceType.PDF,
        status=DocumentStatus.CHUNKED,
        page_count=30,
        attempt_count=3,
        batches={"completed": 3, "pending": 0},
        chunks={"ready": 20, "pending": 10},
    )

    response = client.get(f"/api/v1/documents/{document_id}")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "chunked"
    assert data["page_count"] == 30
    assert data["batches"] == {"completed": 3, "pending": 0}
    assert data["chunks"]["ready"] == 20


def test_get_document_status_not_found(client, mock_ingestion_service):
    document_id = uuid4()
    mock_ingestion_service.get_document_status.side_effect = DocumentNotFoundError(str(document_id))

    response = client.get(f"/api/v1/documents/{document_id}")

    assert response.status_code == 404
    assert response.json()["detail"] == f"Document not found: {document_id}"


def test_sync_agent_knowledge(client, mock_ingestion_service):
    agent_id = uuid4()
    document_id = uuid4()
    mock_ingestion_service.sync_agent.return_value = 12

    response = client.post(
        f"/api/v1/agents/{agent_id}/knowledge/sync",
        json={"document_ids": [str(document_id)]},
    )

    assert response.status_code == 200
    assert response.json() == {"agent_id": str(agent_id), "links_created": 12}
    mock_ingestion_service.sync_agent.assert_awaited_once_with(agent_id, [document_id])


def test_sync_agent_knowledge_unknown_document(client, mock_ingestion_service):
    document_id = uuid4()
    mock_ingestion_service.sync_agent.side_effect = DocumentNotFoundError(str(document_id))

    response = client.post(
        f"/api/v1/agents/{uuid4()}/knowledge/sync",
        json={"document_ids": [str(document_id)]},
    )

    assert response.status_code == 404
