"""
Test suite for the Batch Orchestrator.

Drives documents through split / process / complete against a real SQLite
ledger, with a fake paginated parser that can be scripted to fail.

System role: Verification of batch claims, retries, failure handling and reconciliation
"""

import asyncio
import uuid

import pytest
from sqlalchemy import select

from conftest import (
    FakeAnnotator,
    FakeContextAnalyzer,
    FakeEmbeddingClient,
    FakePagedAdapter,
    FakeSummarizer,
    RecordingScheduler,
    age_rows,
    create_document,
    fetch,
)
from knowledge_backend.boundary.db.CRUD.batch_crud import batch_crud
from knowledge_backend.boundary.db.CRUD.chunk_crud import chunk_crud
from knowledge_backend.boundary.db.CRUD.document_crud import document_crud
from knowledge_backend.boundary.db.models import (
    BatchModel,
    BatchStatus,
    ChunkModel,
    DocumentModel,
    DocumentStatus,
    EmbeddingStatus,
    EnrichmentItemModel,
    EnrichmentStatus,
    SourceType,
)
from knowledge_backend.core.exceptions import ExtractionError
from knowledge_backend.core.ingestion.batch_orchestrator import (
    BatchOrchestrator,
    plan_page_ranges,
)
from knowledge_backend.core.ingestion.chunk_builder import ChunkBuilder
from knowledge_backend.core.ingestion.models import BatchOutcome
from knowledge_backend.core.ingestion.pipeline import build_pipeline
from knowledge_backend.core.ingestion.scheduler import AsyncioWorkScheduler


def _orchestrator(session_factory, scheduler, adapter, settings) -> BatchOrchestrator:
    return BatchOrchestrator(
        session_factory,
        scheduler,
        ChunkBuilder(FakeSummarizer(), settings.atomic_element_threshold),
        settings=settings,
        adapter_factory=lambda source_type: adapter,
    )


async def _start(orchestrator: BatchOrchestrator, session_factory, document_id: uuid.UUID) -> None:
    async with session_factory() as session:
        document = await document_crud.get_by_id(session, document_id)
    page_count = await orchestrator.count_pages(document)
    await orchestrator.split_into_batches(document_id, page_count)
    await orchestrator.schedule_first_batch(document_id)


async def _run_batches(orchestrator: BatchOrchestrator, scheduler: RecordingScheduler) -> list[BatchOutcome]:
    outcomes = []
    while scheduler.batches:
        outcomes.append(await orchestrator.process_batch(scheduler.batches.pop(0)))
    return outcomes


async def _batches(session_factory, document_id: uuid.UUID) -> list[BatchModel]:
    async with session_factory() as session:
        return list(await batch_crud.get_by_document(session, document_id))


class DelayRecordingScheduler(AsyncioWorkScheduler):
    """In-process scheduler that also remembers each batch delay."""

    def __init__(self) -> None:
        super().__init__()
        self.batch_delays: list[float] = []

    def schedule_batch(self, batch_id: uuid.UUID, delay: float = 0.0) -> None:
        self.batch_delays.append(delay)
        super().schedule_batch(batch_id, delay)


async def _chunked_document(
    session_factory, chunk_statuses: list[EmbeddingStatus]
) -> tuple[uuid.UUID, list[uuid.UUID]]:
    document_id = await create_document(session_factory, status=DocumentStatus.CHUNKED)
    async with session_factory() as session:
        [batch] = await batch_crud.create_batches(session, document_id, [(1, 10)])
        await batch_crud.update_by_id(session, batch.id, status=BatchStatus.COMPLETED)
        chunks = await chunk_crud.add_chunks(
            session,
            [
                {
                    "document_id": document_id,
                    "batch_index": 0,
                    "chunk_index": index,
                    "content": f"Chunk {index}",
                    "embedding_status": status,
                    "embedding": [0.1, 0.2, 0.3] if status == EmbeddingStatus.READY else None,
                }
                for index, status in enumerate(chunk_statuses)
            ],
        )
        chunk_ids = [chunk.id for chunk in chunks]
        await session.commit()
    return document_id, chunk_ids


async def _claimed_enrichment_item(session_factory, document_id, chunk_id, attempt_count: int) -> uuid.UUID:
    async with session_factory() as session:
        item = EnrichmentItemModel(
            chunk_id=chunk_id,
            document_id=document_id,
            payload="iVBORw0KGgo=",
            status=EnrichmentStatus.PROCESSING,
            attempt_count=attempt_count,
        )
        session.add(item)
        await session.commit()
        return item.id


class TestPlanPageRanges:
    """Test suite for plan_page_ranges()."""

    @pytest.mark.parametrize(
        "page_count, expected",
        [
            (30, [(1, 10), (11, 20), (21, 30)]),
            (25, [(1, 10), (11, 20), (21, 25)]),
            (10, [(1, 10)]),
            (1, [(1, 1)]),
            (0, [(1, 1)]),
        ],
    )
    def test_ranges_should_cover_document_contiguously(self, page_count: int, expected) -> None:
        """Test ceil(pages / batch size) ranges, at least one."""
        # Act
        ranges = plan_page_ranges(page_count, 10)

        # Assert
        assert ranges == expected


class TestSplitIntoBatches:
    """Test suite for BatchOrchestrator.split_into_batches()."""

    @pytest.mark.asyncio
    async def test_split_should_create_batches_and_move_to_processing(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test the document enters processing with its batches."""
        # Arrange
        document_id = await create_document(session_factory)
        orchestrator = _orchestrator(session_factory, scheduler, FakePagedAdapter(25), ingestion_settings)

        # Act
        count = await orchestrator.split_into_batches(document_id, 25)
        again = await orchestrator.split_into_batches(document_id, 25)

        # Assert
        assert count == 3
        assert again == 3
        document = await fetch(session_factory, DocumentModel, document_id)
        assert document.status == DocumentStatus.PROCESSING
        assert document.page_count == 25
        assert len(await _batches(session_factory, document_id)) == 3

    @pytest.mark.asyncio
    async def test_schedule_first_batch_should_pick_lowest_index(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test only the first batch is scheduled; later ones chain."""
        # Arrange
        document_id = await create_document(session_factory)
        orchestrator = _orchestrator(session_factory, scheduler, FakePagedAdapter(30), ingestion_settings)
        await orchestrator.split_into_batches(document_id, 30)

        # Act
        scheduled = await orchestrator.schedule_first_batch(document_id)

        # Assert
        batches = await _batches(session_factory, document_id)
        assert scheduled is True
        assert scheduler.batches == [batches[0].id]


class TestProcessBatch:
    """Test suite for BatchOrchestrator.process_batch()."""

    @pytest.mark.asyncio
    async def test_document_should_reach_ready_after_transient_batch_failures(
        self, session_factory, ingestion_settings
    ) -> None:
        """Test a 30-page document whose second batch times out twice."""
        # Arrange
        adapter = FakePagedAdapter(
            30,
            failures={11: [TimeoutError("parser timed out"), TimeoutError("parser timed out")]},
        )
        scheduler = DelayRecordingScheduler()
        pipeline = build_pipeline(
            session_factory=session_factory,
            scheduler=scheduler,
            embedding_client=FakeEmbeddingClient(),
            annotator=FakeAnnotator(),
            summarizer=FakeSummarizer(),
            context_analyzer=FakeContextAnalyzer(),
            settings=ingestion_settings,
            adapter_factory=lambda source_type: adapter,
        )
        document_id = await create_document(session_factory)

        # Act
        await _start(pipeline.orchestrator, session_factory, document_id)
        await scheduler.wait_idle(timeout=10)

        # Assert
        batches = await _batches(session_factory, document_id)
        assert [b.status for b in batches] == [BatchStatus.COMPLETED] * 3
        assert [b.attempt_count for b in batches] == [1, 3, 1]
        assert adapter.calls == [(1, 10), (11, 20), (11, 20), (11, 20), (21, 30)]
        retry_delay = ingestion_settings.retry_delay_seconds
        assert scheduler.batch_delays == [0.0, 0.0, retry_delay, retry_delay, 0.0]

        document = await fetch(session_factory, DocumentModel, document_id)
        assert document.status == DocumentStatus.READY
        assert document.attempt_count == 5
        assert document.processing_report["chunks_created"] == 30
        assert document.processing_report["total_attempts"] == 5

        async with session_factory() as session:
            counts = await chunk_crud.count_by_status(session, document_id)
        assert counts[EmbeddingStatus.READY] == 30

    @pytest.mark.asyncio
    async def test_concurrent_calls_should_process_batch_once(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test duplicate deliveries of the same batch are skipped."""
        # Arrange
        adapter = FakePagedAdapter(10)
        orchestrator = _orchestrator(session_factory, scheduler, adapter, ingestion_settings)
        document_id = await create_document(session_factory)
        await _start(orchestrator, session_factory, document_id)
        batch_id = scheduler.batches.pop(0)

        # Act
        outcomes = await asyncio.gather(*(orchestrator.process_batch(batch_id) for _ in range(3)))

        # Assert
        assert sorted(o.value for o in outcomes) == ["completed", "skipped", "skipped"]
        assert adapter.calls == [(1, 10)]
        async with session_factory() as session:
            assert await chunk_crud.count_for_document(session, document_id) == 10
        assert (await fetch(session_factory, BatchModel, batch_id)).attempt_count == 1
        assert scheduler.drains == [document_id]

    @pytest.mark.asyncio
    async def test_batch_should_fail_document_after_exhausting_attempts(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test the attempt cap fails the batch and its document."""
        # Arrange
        adapter = FakePagedAdapter(10, failures={1: [TimeoutError("parser timed out")] * 3})
        orchestrator = _orchestrator(session_factory, scheduler, adapter, ingestion_settings)
        document_id = await create_document(session_factory)
        await _start(orchestrator, session_factory, document_id)

        # Act
        outcomes = await _run_batches(orchestrator, scheduler)

        # Assert
        assert outcomes == [
            BatchOutcome.RETRY_SCHEDULED,
            BatchOutcome.RETRY_SCHEDULED,
            BatchOutcome.FAILED,
        ]
        assert scheduler.batch_delays == [0.0] + [ingestion_settings.retry_delay_seconds] * 2
        [batch] = await _batches(session_factory, document_id)
        assert batch.status == BatchStatus.FAILED
        assert batch.attempt_count == 3
        document = await fetch(session_factory, DocumentModel, document_id)
        assert document.status == DocumentStatus.FAILED
        assert document.error_category == "timeout"
        assert scheduler.drains == []

    @pytest.mark.asyncio
    async def test_structural_failure_should_not_retry(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test a non-retryable parser error fails the document at once."""
        # Arrange
        adapter = FakePagedAdapter(
            20, failures={1: [ExtractionError("Corrupt page tree", retryable=False)]}
        )
        orchestrator = _orchestrator(session_factory, scheduler, adapter, ingestion_settings)
        document_id = await create_document(session_factory)
        await _start(orchestrator, session_factory, document_id)

        # Act
        outcomes = await _run_batches(orchestrator, scheduler)

        # Assert
        assert outcomes == [BatchOutcome.FAILED]
        batches = await _batches(session_factory, document_id)
        assert [b.status for b in batches] == [BatchStatus.FAILED, BatchStatus.PENDING]
        assert batches[0].attempt_count == 1
        document = await fetch(session_factory, DocumentModel, document_id)
        assert document.status == DocumentStatus.FAILED
        assert "Corrupt page tree" in document.last_error

    @pytest.mark.asyncio
    async def test_batch_of_failed_document_should_be_cancelled(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test no extraction happens once the document failed."""
        # Arrange
        adapter = FakePagedAdapter(20)
        orchestrator = _orchestrator(session_factory, scheduler, adapter, ingestion_settings)
        document_id = await create_document(session_factory)
        await _start(orchestrator, session_factory, document_id)
        async with session_factory() as session:
            await document_crud.mark_failed(session, document_id, RuntimeError("cancelled by user"))
            await session.commit()

        # Act
        outcomes = await _run_batches(orchestrator, scheduler)

        # Assert
        assert outcomes == [BatchOutcome.CANCELLED]
        assert adapter.calls == []
        batches = await _batches(session_factory, document_id)
        assert batches[0].status == BatchStatus.FAILED

    @pytest.mark.asyncio
    async def test_document_without_chunks_should_fail(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test a document that yields no content can never become ready."""
        # Arrange
        adapter = FakePagedAdapter(10, empty=True)
        orchestrator = _orchestrator(session_factory, scheduler, adapter, ingestion_settings)
        document_id = await create_document(session_factory)
        await _start(orchestrator, session_factory, document_id)

        # Act
        outcomes = await _run_batches(orchestrator, scheduler)

        # Assert
        assert outcomes == [BatchOutcome.COMPLETED]
        document = await fetch(session_factory, DocumentModel, document_id)
        assert document.status == DocumentStatus.FAILED
        assert "No content extracted" in document.last_error
        assert scheduler.drains == []

    @pytest.mark.asyncio
    async def test_markdown_document_should_run_as_single_batch(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test non-paginated sources get one batch without a page range."""
        # Arrange
        orchestrator = BatchOrchestrator(
            session_factory,
            scheduler,
            ChunkBuilder(FakeSummarizer()),
            settings=ingestion_settings,
        )
        document_id = await create_document(
            session_factory,
            name="notes.md",
            source_type=SourceType.MARKDOWN,
            source_text="# Notes\n\nFirst page\n\n---\n\nSecond page",
        )

        # Act
        await _start(orchestrator, session_factory, document_id)
        outcomes = await _run_batches(orchestrator, scheduler)

        # Assert
        assert outcomes == [BatchOutcome.COMPLETED]
        [batch] = await _batches(session_factory, document_id)
        assert (batch.page_start, batch.page_end) == (None, None)
        async with session_factory() as session:
            chunks = (
                await session.execute(
                    select(ChunkModel)
                    .where(ChunkModel.document_id == document_id)
                    .order_by(ChunkModel.chunk_index)
                )
            ).scalars().all()
        assert [c.page_number for c in chunks] == [1, 1, 2]
        assert [c.chunk_type for c in chunks] == ["header", "text", "text"]
        document = await fetch(session_factory, DocumentModel, document_id)
        assert document.status == DocumentStatus.CHUNKED
        assert document.page_count == 1


class TestReconcile:
    """Test suite for BatchOrchestrator.reconcile()."""

    @pytest.mark.asyncio
    async def test_reconcile_should_release_and_reschedule_stale_batch(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test a batch whose worker vanished goes back to pending and is scheduled."""
        # Arrange
        orchestrator = _orchestrator(session_factory, scheduler, FakePagedAdapter(10), ingestion_settings)
        document_id = await create_document(session_factory)
        await orchestrator.split_into_batches(document_id, 10)
        [batch] = await _batches(session_factory, document_id)
        async with session_factory() as session:
            await batch_crud.claim(session, batch.id)
            await session.commit()
        await age_rows(session_factory, BatchModel, [batch.id])

        # Act
        report = await orchestrator.reconcile()

        # Assert
        assert report.batches_released == 1
        assert report.batches_rescheduled == 1
        assert report.documents_reset == []
        assert scheduler.batches == [batch.id]
        stored = await fetch(session_factory, BatchModel, batch.id)
        assert stored.status == BatchStatus.PENDING
        assert stored.attempt_count == 1

    @pytest.mark.asyncio
    async def test_reconcile_should_fail_document_of_exhausted_stale_batch(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test an abandoned batch without attempts left fails its document."""
        # Arrange
        orchestrator = _orchestrator(session_factory, scheduler, FakePagedAdapter(10), ingestion_settings)
        document_id = await create_document(session_factory)
        await orchestrator.split_into_batches(document_id, 10)
        [batch] = await _batches(session_factory, document_id)
        async with session_factory() as session:
            await batch_crud.update_by_id(
                session, batch.id, status=BatchStatus.PROCESSING, attempt_count=3
            )
            await session.commit()
        await age_rows(session_factory, BatchModel, [batch.id])

        # Act
        report = await orchestrator.reconcile()

        # Assert
        assert report.batches_failed == 1
        assert scheduler.batches == []
        document = await fetch(session_factory, DocumentModel, document_id)
        assert document.status == DocumentStatus.FAILED

    @pytest.mark.asyncio
    async def test_reconcile_should_restart_document_without_progress(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test a processing document with no chunks and no activity is rebuilt."""
        # Arrange
        orchestrator = _orchestrator(session_factory, scheduler, FakePagedAdapter(20), ingestion_settings)
        document_id = await create_document(session_factory)
        await orchestrator.split_into_batches(document_id, 20)
        old_ids = [b.id for b in await _batches(session_factory, document_id)]
        await age_rows(session_factory, DocumentModel, [document_id])

        # Act
        report = await orchestrator.reconcile()

        # Assert
        assert report.documents_reset == [document_id]
        assert report.batches_rescheduled == 0
        batches = await _batches(session_factory, document_id)
        assert len(batches) == 2
        assert not set(old_ids) & {b.id for b in batches}
        assert scheduler.batches == [batches[0].id]
        document = await fetch(session_factory, DocumentModel, document_id)
        assert document.status == DocumentStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_reconcile_should_leave_recently_active_document_alone(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test a document touched within the cutoff keeps its batches."""
        # Arrange
        orchestrator = _orchestrator(session_factory, scheduler, FakePagedAdapter(20), ingestion_settings)
        document_id = await create_document(session_factory)
        await orchestrator.split_into_batches(document_id, 20)
        old_ids = [b.id for b in await _batches(session_factory, document_id)]

        # Act
        report = await orchestrator.reconcile()

        # Assert
        assert report.documents_reset == []
        assert report.batches_rescheduled == 1
        assert scheduler.batches == [old_ids[0]]

    @pytest.mark.asyncio
    async def test_reconcile_should_promote_document_that_missed_ready(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test a chunked document whose chunks are all settled becomes ready."""
        # Arrange
        orchestrator = _orchestrator(session_factory, scheduler, FakePagedAdapter(10), ingestion_settings)
        document_id = await create_document(session_factory, status=DocumentStatus.CHUNKED)
        async with session_factory() as session:
            [batch] = await batch_crud.create_batches(session, document_id, [(1, 10)])
            await batch_crud.update_by_id(session, batch.id, status=BatchStatus.COMPLETED)
            await chunk_crud.add_chunks(
                session,
                [
                    {
                        "document_id": document_id,
                        "batch_index": 0,
                        "chunk_index": 0,
                        "content": "Embedded before the worker crashed",
                        "embedding_status": EmbeddingStatus.READY,
                        "embedding": [0.1, 0.2, 0.3],
                    }
                ],
            )
            await session.commit()

        # Act
        report = await orchestrator.reconcile()

        # Assert
        assert report.documents_marked_ready == [document_id]
        document = await fetch(session_factory, DocumentModel, document_id)
        assert document.status == DocumentStatus.READY

    @pytest.mark.asyncio
    async def test_reconcile_should_reschedule_drains_of_chunked_documents(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test pending chunks of a chunked document get a new drain."""
        # Arrange
        orchestrator = _orchestrator(session_factory, scheduler, FakePagedAdapter(10), ingestion_settings)
        document_id = await create_document(session_factory, status=DocumentStatus.CHUNKED)
        async with session_factory() as session:
            [batch] = await batch_crud.create_batches(session, document_id, [(1, 10)])
            await batch_crud.update_by_id(session, batch.id, status=BatchStatus.COMPLETED)
            await chunk_crud.add_chunks(
                session,
                [
                    {
                        "document_id": document_id,
                        "batch_index": 0,
                        "chunk_index": 0,
                        "content": "Still waiting for an embedding",
                        "embedding_status": EmbeddingStatus.PENDING,
                    }
                ],
            )
            await session.commit()

        # Act
        report = await orchestrator.reconcile()

        # Assert
        assert report.drains_rescheduled == [document_id]
        assert scheduler.drains == [document_id]

    @pytest.mark.asyncio
    async def test_reconcile_should_complete_document_whose_batches_all_finished(
        self, session_factory, scheduler, ingestion_settings, monkeypatch
    ) -> None:
        """Test a document left processing after its last batch completed moves to chunked."""
        # Arrange
        orchestrator = _orchestrator(session_factory, scheduler, FakePagedAdapter(10), ingestion_settings)
        document_id = await create_document(session_factory)
        await _start(orchestrator, session_factory, document_id)

        async def stop_before_advancing(document_id: uuid.UUID) -> None:
            return None

        monkeypatch.setattr(orchestrator, "_advance", stop_before_advancing)
        assert await _run_batches(orchestrator, scheduler) == [BatchOutcome.COMPLETED]
        assert (await fetch(session_factory, DocumentModel, document_id)).status == DocumentStatus.PROCESSING

        # Act
        report = await orchestrator.reconcile()

        # Assert
        assert report.documents_completed == [document_id]
        assert report.documents_reset == []
        assert report.drains_rescheduled == []
        assert scheduler.drains == [document_id]
        document = await fetch(session_factory, DocumentModel, document_id)
        assert document.status == DocumentStatus.CHUNKED
        assert document.processing_report["chunks_created"] == 10

    @pytest.mark.asyncio
    async def test_reconcile_should_release_chunks_abandoned_by_a_drain(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test stale processing chunks return to pending and get a new drain."""
        # Arrange
        orchestrator = _orchestrator(session_factory, scheduler, FakePagedAdapter(10), ingestion_settings)
        document_id, [stale_id, active_id] = await _chunked_document(
            session_factory, [EmbeddingStatus.PROCESSING, EmbeddingStatus.PROCESSING]
        )
        await age_rows(session_factory, ChunkModel, [stale_id])

        # Act
        report = await orchestrator.reconcile()

        # Assert
        assert report.chunks_released == 1
        assert report.drains_rescheduled == [document_id]
        assert scheduler.drains == [document_id]
        assert (await fetch(session_factory, ChunkModel, stale_id)).embedding_status == EmbeddingStatus.PENDING
        assert (await fetch(session_factory, ChunkModel, active_id)).embedding_status == EmbeddingStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_reconcile_should_release_abandoned_enrichment_item(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test a stale enrichment item with attempts left goes back to pending and is rescheduled."""
        # Arrange
        orchestrator = _orchestrator(session_factory, scheduler, FakePagedAdapter(10), ingestion_settings)
        document_id, [chunk_id] = await _chunked_document(
            session_factory, [EmbeddingStatus.WAITING_ENRICHMENT]
        )
        item_id = await _claimed_enrichment_item(session_factory, document_id, chunk_id, attempt_count=1)
        await age_rows(session_factory, EnrichmentItemModel, [item_id])

        # Act
        report = await orchestrator.reconcile()

        # Assert
        assert report.enrichment_released == 1
        assert report.enrichment_failed == 0
        assert report.enrichment_rescheduled is True
        assert scheduler.enrichments == [None]
        item = await fetch(session_factory, EnrichmentItemModel, item_id)
        assert item.status == EnrichmentStatus.PENDING
        assert item.attempt_count == 1
        chunk = await fetch(session_factory, ChunkModel, chunk_id)
        assert chunk.embedding_status == EmbeddingStatus.WAITING_ENRICHMENT

    @pytest.mark.asyncio
    async def test_reconcile_should_fail_exhausted_enrichment_item_and_its_chunk(
        self, session_factory, scheduler, ingestion_settings
    ) -> None:
        """Test an abandoned item without attempts left fails with its chunk and unblocks readiness."""
        # Arrange
        orchestrator = _orchestrator(session_factory, scheduler, FakePagedAdapter(10), ingestion_settings)
        document_id, [ready_id, chart_id] = await _chunked_document(
            session_factory, [EmbeddingStatus.READY, EmbeddingStatus.WAITING_ENRICHMENT]
        )
        item_id = await _claimed_enrichment_item(
            session_factory, document_id, chart_id, attempt_count=ingestion_settings.max_enrichment_attempts
        )
        await age_rows(session_factory, EnrichmentItemModel, [item_id])

        # Act
        report = await orchestrator.reconcile()

        # Assert
        assert report.enrichment_failed == 1
        assert report.enrichment_rescheduled is False
        assert (await fetch(session_factory, EnrichmentItemModel, item_id)).status == EnrichmentStatus.FAILED
        chunk = await fetch(session_factory, ChunkModel, chart_id)
        assert chunk.embedding_status == EmbeddingStatus.FAILED
        assert "abandoned" in chunk.embedding_error
        assert report.documents_marked_ready == [document_id]
        assert (await fetch(session_factory, DocumentModel, document_id)).status == DocumentStatus.READY
