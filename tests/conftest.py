"""
Shared test fixtures and configuration for entire test suite.

Provides: file-backed SQLite ledger, recording scheduler, fake parsers and
fake LLM boundaries, document factory
Dependencies: pytest, sqlalchemy, aiosqlite
System role: Test infrastructure and fixture management
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from knowledge_backend.boundary.db.connection import session_factory_for
from knowledge_backend.boundary.db.create_tables import create_all_tables
from knowledge_backend.boundary.db.models import (  # noqa: F401 - registers every table
    AgentKnowledgeModel,
    BatchModel,
    ChunkModel,
    DocumentModel,
    EnrichmentItemModel,
    QueryExpansionModel,
)
from knowledge_backend.boundary.db.models.document_model import DocumentStatus, SourceType
from knowledge_backend.boundary.extraction.base_extractor import (
    ElementType,
    ExtractedElement,
    PageRange,
)
from knowledge_backend.boundary.llm.context_analyzer import DocumentContext
from knowledge_backend.configs.ingestion import IngestionSettings
from knowledge_backend.core.exceptions import EmbeddingDimensionError, EnrichmentError

FAKE_DIMENSION = 3


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite engine with every ledger table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    await create_all_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the application factory."""
    return session_factory_for(engine)


@pytest.fixture
async def session(session_factory):
    """One session for direct CRUD tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def ingestion_settings() -> IngestionSettings:
    """Ingestion settings with explicit values, independent of the environment."""
    return IngestionSettings(
        pages_per_batch=10,
        max_batch_attempts=3,
        stale_batch_seconds=900,
        retry_delay_seconds=0.01,
        atomic_element_threshold=200,
        enrichment_batch_size=5,
        max_enrichment_attempts=3,
        description_max_chars=4000,
        context_sample_chars=2000,
        embedding_batch_size=10,
        continuation_enabled=True,
        extraction_timeout_seconds=5.0,
        external_call_timeout_seconds=5.0,
        scheduler_backend="asyncio",
    )


class RecordingScheduler:
    """WorkScheduler that records requests instead of running them."""

    def __init__(self) -> None:
        self.batches: list[uuid.UUID] = []
        self.batch_delays: list[float] = []
        self.drains: list[uuid.UUID | None] = []
        self.enrichments: list[uuid.UUID | None] = []

    def schedule_batch(self, batch_id: uuid.UUID, delay: float = 0.0) -> None:
        self.batches.append(batch_id)
        self.batch_delays.append(delay)

    def schedule_drain(self, document_id: uuid.UUID | None = None) -> None:
        self.drains.append(document_id)

    def schedule_enrichment(self, document_id: uuid.UUID | None = None) -> None:
        self.enrichments.append(document_id)


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


class FakePagedAdapter:
    """
    Paginated parser returning one paragraph per page.

    failures maps a batch's first page to exceptions raised by successive
    extract() calls for that batch.
    """

    paginated = True

    def __init__(
        self,
        page_count: int = 30,
        failures: dict[int, list[BaseException]] | None = None,
        extra_elements: dict[int, list[ExtractedElement]] | None = None,
        empty: bool = False,
    ) -> None:
        self.page_count = page_count
        self.failures = failures or {}
        self.extra_elements = extra_elements or {}
        self.empty = empty
        self.calls: list[tuple[int, int]] = []

    async def count_pages(self, source: bytes | str) -> int:
        return self.page_count

    async def extract(
        self,
        source: bytes | str,
        page_range: PageRange | None = None,
    ) -> list[ExtractedElement]:
        self.calls.append((page_range.start, page_range.end))
        await asyncio.sleep(0)
        pending = self.failures.get(page_range.start)
        if pending:
            raise pending.pop(0)
        if self.empty:
            return []
        elements = [
            ExtractedElement(
                element_type=ElementType.PARAGRAPH,
                page=page,
                y=10.0,
                payload=f"Narrative text of page {page}",
                extraction_order=index,
            )
            for index, page in enumerate(range(page_range.start, page_range.end + 1))
        ]
        return elements + self.extra_elements.get(page_range.start, [])


class FakeEmbeddingClient:
    """Embedding client returning small deterministic vectors."""

    dimension = FAKE_DIMENSION

    def __init__(self, fail_markers: tuple[str, ...] = ()) -> None:
        self.fail_markers = fail_markers
        self.calls: list[str] = []

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        await asyncio.sleep(0)
        vectors = []
        for text in texts:
            self.calls.append(text)
            if any(marker in text for marker in self.fail_markers):
                raise EmbeddingDimensionError(expected=FAKE_DIMENSION, actual=2)
            vectors.append([float(len(text)), 1.0, 0.0])
        return vectors

    async def embed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        return [1.0, 0.0, 0.0]


class FakeAnnotator:
    """Vision annotator that records prompts and can be told to fail."""

    def __init__(self, description: str = "Bar chart of revenue by year", fail: bool = False) -> None:
        self.description = description
        self.fail = fail
        self.prompts: list[str] = []

    async def describe(self, payload: str, media_type: str, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.fail:
            raise EnrichmentError("Vision annotation timed out")
        return self.description


class FakeSummarizer:
    """Summariser returning a fixed summary."""

    def __init__(self, summary: str = "Summary of a large table", fail: bool = False) -> None:
        self.summary = summary
        self.fail = fail
        self.calls: list[str] = []

    async def summarize(self, content: str, element_type: str) -> str:
        self.calls.append(element_type)
        if self.fail:
            raise RuntimeError("summary model unavailable")
        return self.summary


class FakeContextAnalyzer:
    """Context analyser returning a fixed finance context."""

    def __init__(self, context: DocumentContext | None = None) -> None:
        self.context = context or DocumentContext(
            domain="finance",
            focus_elements=["revenue", "margins"],
            terminology=["EBITDA", "operating income"],
            verbosity="pedantic",
        )
        self.samples: list[str] = []

    async def analyze(self, sample: str) -> DocumentContext:
        self.samples.append(sample)
        return self.context


@pytest.fixture
def embedding_client() -> FakeEmbeddingClient:
    return FakeEmbeddingClient()


@pytest.fixture
def annotator() -> FakeAnnotator:
    return FakeAnnotator()


@pytest.fixture
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture
def context_analyzer() -> FakeContextAnalyzer:
    return FakeContextAnalyzer()


async def create_document(
    session_factory: async_sessionmaker[AsyncSession],
    name: str = "annual-report.pdf",
    source_type: SourceType = SourceType.PDF,
    source_text: str | None = "stub source",
    **fields,
) -> uuid.UUID:
    """Insert a document row and return its id."""
    async with session_factory() as session:
        document = DocumentModel(
            name=name,
            source_type=source_type,
            source_text=source_text,
            status=fields.pop("status", DocumentStatus.INGESTED),
            attempt_count=fields.pop("attempt_count", 0),
            **fields,
        )
        session.add(document)
        await session.commit()
        return document.id


async def age_rows(
    session_factory: async_sessionmaker[AsyncSession],
    model,
    ids: list[uuid.UUID],
    seconds: int = 3600,
) -> None:
    """Push updated_at of the given rows into the past."""
    past = datetime.now(timezone.utc) - timedelta(seconds=seconds)
    async with session_factory() as session:
        await session.execute(
            update(model)
            .where(model.id.in_(ids))
            .values(updated_at=past)
            .execution_options(synchronize_session=False)
        )
        await session.commit()


async def fetch(session_factory, model, id: uuid.UUID):
    """Load a row in a fresh session."""
    async with session_factory() as session:
        return await session.get(model, id)
