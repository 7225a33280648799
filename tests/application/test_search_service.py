"""
Test suite for SearchService.

System role: Verification of profile resolution and context building
"""

import uuid
from unittest.mock import AsyncMock

import pytest

from knowledge_backend.application.services.search_service import SearchService
from knowledge_backend.core.retrieval.agent_profiles import AgentProfileKind
from knowledge_backend.core.retrieval.models import MatchType, SearchResult


def _result(content: str, score: float) -> SearchResult:
    return SearchResult(
        chunk_id=uuid.uuid4(),
        document_id=uuid.uuid4(),
        document_name="handbook.md",
        content=content,
        chunk_type="text",
        score=score,
        base_score=score,
        match_type=MatchType.SEMANTIC,
    )


@pytest.fixture
def mock_engine() -> AsyncMock:
    engine = AsyncMock()
    engine.search = AsyncMock(return_value=[_result("Refunds take 5 days", 0.9)])
    return engine


class TestSearchService:
    """Test suite for SearchService."""

    @pytest.mark.asyncio
    async def test_search_should_resolve_profile_from_instructions(self, mock_engine: AsyncMock) -> None:
        """Test the agent instructions select the ranking profile."""
        # Arrange
        service = SearchService(mock_engine)
        agent_id = uuid.uuid4()

        # Act
        results = await service.search(
            agent_id,
            "refund policy",
            document_name="handbook.md",
            limit=3,
            agent_instructions="Help customers with support tickets",
        )

        # Assert
        assert len(results) == 1
        args, kwargs = mock_engine.search.call_args
        assert args == (agent_id, "refund policy")
        assert kwargs["document_name"] == "handbook.md"
        assert kwargs["limit"] == 3
        assert kwargs["profile"].kind == AgentProfileKind.PROCEDURAL

    @pytest.mark.asyncio
    async def test_search_without_instructions_should_use_general_profile(self, mock_engine: AsyncMock) -> None:
        """Test the general profile is the default."""
        # Arrange
        service = SearchService(mock_engine)

        # Act
        await service.search(uuid.uuid4(), "refund policy")

        # Assert
        assert mock_engine.search.call_args.kwargs["profile"].kind == AgentProfileKind.GENERAL

    @pytest.mark.asyncio
    async def test_build_context_should_format_results(self, mock_engine: AsyncMock) -> None:
        """Test results are rendered as prompt context."""
        # Arrange
        service = SearchService(mock_engine)

        # Act
        context = await service.build_context(uuid.uuid4(), "refund policy")

        # Assert
        assert context == (
            "[Chunk 1] Document: handbook.md | Type: text | Similarity: 90.0%\n"
            "Refunds take 5 days"
        )

    @pytest.mark.asyncio
    async def test_build_context_without_results_should_be_empty(self, mock_engine: AsyncMock) -> None:
        """Test nothing is rendered when nothing matched."""
        # Arrange
        mock_engine.search.return_value = []
        service = SearchService(mock_engine)

        # Act
        context = await service.build_context(uuid.uuid4(), "refund policy")

        # Assert
        assert context == ""
