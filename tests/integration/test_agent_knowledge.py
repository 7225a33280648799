"""
Integration tests for agent knowledge links and the chunk fetch used by search.

System role: Verification of retrieval scope maintenance against SQLite
"""

import uuid

import pytest

from conftest import create_document
from knowledge_backend.boundary.db.CRUD.agent_knowledge_crud import agent_knowledge_crud
from knowledge_backend.boundary.db.CRUD.batch_crud import batch_crud
from knowledge_backend.boundary.db.CRUD.chunk_crud import chunk_crud
from knowledge_backend.boundary.db.models import EmbeddingStatus
from knowledge_backend.boundary.search.pgvector_search import PgSearchBackend, build_tsquery
from knowledge_backend.core.ingestion.agent_sync import sync_agent

AGENT_ID = uuid.UUID("00000000-0000-0000-0000-0000000a6e71")


async def _document_with_chunks(session_factory, statuses: list[EmbeddingStatus], name="annual-report.pdf"):
    document_id = await create_document(session_factory, name=name)
    async with session_factory() as session:
        await batch_crud.create_batches(session, document_id, [(1, 10)])
        chunks = await chunk_crud.add_chunks(
            session,
            [
                {
                    "document_id": document_id,
                    "batch_index": 0,
                    "chunk_index": index,
                    "page_number": index + 1,
                    "content": f"content {index}",
                    "original_content": f"| original {index} |" if index == 0 else None,
                    "chunk_type": "table" if index == 0 else "text",
                    "heading_path": ["Results"],
                    "embedding_status": status,
                }
                for index, status in enumerate(statuses)
            ],
        )
        await session.commit()
    return document_id, [chunk.id for chunk in chunks]


class TestSyncAgent:
    """Test suite for sync_agent()."""

    @pytest.mark.asyncio
    async def test_sync_should_link_only_ready_chunks(self, session_factory) -> None:
        """Test pending and failed chunks stay out of the agent's scope."""
        # Arrange
        document_id, chunk_ids = await _document_with_chunks(
            session_factory,
            [EmbeddingStatus.READY, EmbeddingStatus.PENDING, EmbeddingStatus.READY, EmbeddingStatus.FAILED],
        )

        # Act
        inserted = await sync_agent(session_factory, AGENT_ID, [document_id])

        # Assert
        assert inserted == 2
        async with session_factory() as session:
            linked = await agent_knowledge_crud.active_chunk_ids(session, AGENT_ID)
        assert linked == {chunk_ids[0], chunk_ids[2]}

    @pytest.mark.asyncio
    async def test_sync_should_be_idempotent(self, session_factory) -> None:
        """Test a second sync inserts nothing."""
        # Arrange
        document_id, _ = await _document_with_chunks(session_factory, [EmbeddingStatus.READY] * 3)
        await sync_agent(session_factory, AGENT_ID, [document_id])

        # Act
        inserted = await sync_agent(session_factory, AGENT_ID, [document_id])

        # Assert
        assert inserted == 0
        async with session_factory() as session:
            linked = await agent_knowledge_crud.active_chunk_ids(session, AGENT_ID)
        assert len(linked) == 3

    @pytest.mark.asyncio
    async def test_sync_should_scope_to_requested_documents(self, session_factory) -> None:
        """Test other documents are not linked."""
        # Arrange
        wanted, _ = await _document_with_chunks(session_factory, [EmbeddingStatus.READY])
        await _document_with_chunks(session_factory, [EmbeddingStatus.READY], name="other.pdf")

        # Act
        inserted = await sync_agent(session_factory, AGENT_ID, [wanted])

        # Assert
        assert inserted == 1

    @pytest.mark.asyncio
    async def test_links_should_be_per_agent(self, session_factory) -> None:
        """Test another agent does not see the first agent's links."""
        # Arrange
        document_id, _ = await _document_with_chunks(session_factory, [EmbeddingStatus.READY])
        await sync_agent(session_factory, AGENT_ID, [document_id])

        # Act
        async with session_factory() as session:
            linked = await agent_knowledge_crud.active_chunk_ids(session, uuid.uuid4())

        # Assert
        assert linked == set()


class TestPgSearchBackend:
    """Test suite for the dialect-neutral parts of PgSearchBackend."""

    @pytest.mark.parametrize(
        "terms, expected",
        [
            (["total", "assets"], "total | assets"),
            (["Total", "total", "ASSETS"], "total | assets"),
            (["10-K", "cover&page"], "10 | k | cover | page"),
            (["!!!", ""], ""),
        ],
    )
    def test_build_tsquery_should_keep_safe_tokens(self, terms, expected: str) -> None:
        """Test terms are reduced to unique alphanumeric tokens."""
        # Assert
        assert build_tsquery(terms) == expected

    @pytest.mark.asyncio
    async def test_fetch_chunks_should_return_records_with_document_name(self, session_factory) -> None:
        """Test chunk records carry content, original content and the document name."""
        # Arrange
        document_id, chunk_ids = await _document_with_chunks(
            session_factory, [EmbeddingStatus.READY, EmbeddingStatus.READY]
        )
        backend = PgSearchBackend(session_factory)

        # Act
        records = await backend.fetch_chunks(chunk_ids + [uuid.uuid4()])

        # Assert
        by_id = {record.chunk_id: record for record in records}
        assert set(by_id) == set(chunk_ids)
        table = by_id[chunk_ids[0]]
        assert table.document_id == document_id
        assert table.document_name == "annual-report.pdf"
        assert table.original_content == "| original 0 |"
        assert table.chunk_type == "table"
        assert table.page_number == 1
        assert table.heading_path == ["Results"]

    @pytest.mark.asyncio
    async def test_fetch_chunks_without_ids_should_not_query(self, session_factory) -> None:
        """Test an empty id list returns nothing."""
        # Act
        records = await PgSearchBackend(session_factory).fetch_chunks([])

        # Assert
        assert records == []
