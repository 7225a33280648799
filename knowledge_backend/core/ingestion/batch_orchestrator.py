"""
Batch Orchestrator.

Splits documents into page-range batches and processes one batch per call:
claim, extract, build chunks, record the outcome, then schedule the next
unit. Every state transition is committed before the next external call so a
crash leaves a state the reconciliation sweep can repair.

Dependencies: sqlalchemy, knowledge_backend.boundary, knowledge_backend.core
System role: Ingestion chain driver
"""

import asyncio
import logging
import math
import time
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from knowledge_backend.boundary.db.base import utc_now
from knowledge_backend.boundary.db.CRUD.batch_crud import PageRange as BatchRange, batch_crud
from knowledge_backend.boundary.db.CRUD.chunk_crud import chunk_crud
from knowledge_backend.boundary.db.CRUD.document_crud import document_crud
from knowledge_backend.boundary.db.CRUD.enrichment_crud import enrichment_crud
from knowledge_backend.boundary.db.models.batch_model import BatchStatus
from knowledge_backend.boundary.db.models.chunk_model import EmbeddingStatus
from knowledge_backend.boundary.db.models.document_model import (
    DocumentModel,
    DocumentStatus,
    SourceType,
)
from knowledge_backend.boundary.extraction import ExtractionAdapter, PageRange, get_extraction_adapter
from knowledge_backend.configs.ingestion import IngestionSettings
from knowledge_backend.core.exceptions import (
    DocumentNotFoundError,
    DocumentProcessingError,
    ExtractionError,
)
from knowledge_backend.core.ingestion.chunk_builder import ChunkBuilder
from knowledge_backend.core.ingestion.models import BatchOutcome, ReconcileReport
from knowledge_backend.core.ingestion.readiness import check_document_ready
from knowledge_backend.core.ingestion.scheduler import WorkScheduler
from knowledge_backend.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[SourceType], ExtractionAdapter]


def plan_page_ranges(page_count: int, pages_per_batch: int) -> list[BatchRange]:
    """
    1-indexed inclusive page ranges covering a document.

    Args:
        page_count: Pages in the document
        pages_per_batch: Pages per batch

    Returns:
        list: max(1, ceil(page_count / pages_per_batch)) ranges
    """
    batch_count = max(1, math.ceil(page_count / pages_per_batch))
    ranges: list[BatchRange] = []
    for index in range(batch_count):
        start = index * pages_per_batch + 1
        end = max(start, min(page_count, (index + 1) * pages_per_batch))
        ranges.append((start, end))
    return ranges


async def load_source(document: DocumentModel) -> bytes | str:
    """
    Read a document's source.

    Inline text wins over the file reference.

    Raises:
        ExtractionError: Non-retryable, when there is no readable source
    """
    if document.source_text is not None:
        return document.source_text
    if not document.file_path:
        raise ExtractionError(
            "Document has neither source text nor a file reference",
            document_id=str(document.id),
            retryable=False,
        )
    try:
        return await asyncio.to_thread(Path(document.file_path).read_bytes)
    except FileNotFoundError as e:
        raise ExtractionError(
            f"File not found: {document.file_path}",
            document_id=str(document.id),
            retryable=False,
        ) from e


class BatchOrchestrator:
    """Drives documents through batch extraction and chunk building."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        scheduler: WorkScheduler,
        chunk_builder: ChunkBuilder,
        settings: IngestionSettings | None = None,
        adapter_factory: AdapterFactory = get_extraction_adapter,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            session_factory: Session factory; one short session per unit of work
            scheduler: Schedules follow-up batches, drains and enrichment runs
            chunk_builder: Builds chunks from extracted elements
            settings: Ingestion settings (defaults from environment)
            adapter_factory: Resolves the parser for a source type
        """
        self._session_factory = session_factory
        self._scheduler = scheduler
        self._chunk_builder = chunk_builder
        self._settings = settings or IngestionSettings()
        self._adapter_factory = adapter_factory

    async def count_pages(self, document: DocumentModel) -> int:
        """Pages reported by the document's parser (1 for non-paginated sources)."""
        adapter = self._adapter_factory(document.source_type)
        if not adapter.paginated:
            return 1
        source = await load_source(document)
        return await asyncio.wait_for(
            adapter.count_pages(source),
            timeout=self._settings.extraction_timeout_seconds,
        )

    async def split_into_batches(
        self,
        document_id: uuid.UUID,
        page_count: int,
        pages_per_batch: int | None = None,
    ) -> int:
        """
        Create the batches of an ingested document and move it to processing.

        Idempotent: when the document has left ingested (another caller won
        the transition) the existing batch count is returned.

        Args:
            document_id: Document UUID
            page_count: Pages in the document
            pages_per_batch: Override for the configured batch size

        Returns:
            int: Number of batches of the document

        Raises:
            DocumentNotFoundError: When the document does not exist
        """
        pages_per_batch = pages_per_batch or self._settings.pages_per_batch

        async with self._session_factory() as session:
            document = await document_crud.get_by_id(session, document_id)
            if document is None:
                raise DocumentNotFoundError(str(document_id))

            won = await document_crud.transition_status(
                session,
                document_id,
                DocumentStatus.INGESTED,
                DocumentStatus.PROCESSING,
                page_count=page_count,
            )
            if not won:
                existing = await batch_crud.get_by_document(session, document_id)
                return len(existing)

            if self._adapter_factory(document.source_type).paginated:
                ranges = plan_page_ranges(page_count, pages_per_batch)
            else:
                ranges = [(None, None)]
            await batch_crud.create_batches(session, document_id, ranges)
            await session.commit()

        logger.info(
            f"{__name__}:split_into_batches - Created {len(ranges)} batches",
            extra={"document_id": str(document_id), "page_count": page_count},
        )
        return len(ranges)

    async def schedule_first_batch(self, document_id: uuid.UUID) -> bool:
        """Schedule the lowest pending batch of a document, if any."""
        async with self._session_factory() as session:
            batch = await batch_crud.next_pending(session, document_id)
        if batch is None:
            return False
        self._scheduler.schedule_batch(batch.id)
        return True

    async def process_batch(self, batch_id: uuid.UUID) -> BatchOutcome:
        """
        Process one batch.

        Safe to call any number of times, concurrently: only the caller that
        wins the pending -> processing claim does any work.

        Args:
            batch_id: Batch UUID

        Returns:
            BatchOutcome: What this call did
        """
        async with self._session_factory() as session:
            if not await batch_crud.claim(session, batch_id):
                await session.rollback()
                logger.info(
                    f"{__name__}:process_batch - Batch not pending, skipping",
                    extra={"batch_id": str(batch_id)},
                )
                return BatchOutcome.SKIPPED

            batch = await batch_crud.get_by_id(session, batch_id)
            document = await document_crud.get_by_id(session, batch.document_id)
            await document_crud.increment_attempts(session, document.id)

            if document.status == DocumentStatus.FAILED:
                await batch_crud.mark_failed(
                    session,
                    batch_id,
                    DocumentProcessingError("Document failed, batch cancelled", str(document.id)),
                )
                await session.commit()
                logger.info(
                    f"{__name__}:process_batch - Document failed, batch cancelled",
                    extra={"batch_id": str(batch_id), "document_id": str(document.id)},
                )
                return BatchOutcome.CANCELLED

            document_id = document.id
            batch_index = batch.batch_index
            attempt = batch.attempt_count
            page_range = (
                PageRange(start=batch.page_start, end=batch.page_end)
                if batch.page_start is not None and batch.page_end is not None
                else None
            )
            await session.commit()

        started = time.perf_counter()
        try:
            source = await load_source(document)
            adapter = self._adapter_factory(document.source_type)
            elements = await asyncio.wait_for(
                adapter.extract(source, page_range),
                timeout=self._settings.extraction_timeout_seconds,
            )
            planned = await self._chunk_builder.plan(elements, batch_index, page_range)
        except ExtractionError as e:
            if e.retryable:
                return await self._handle_transient(batch_id, document_id, attempt, e)
            return await self._handle_structural(batch_id, document_id, e)
        except Exception as e:
            return await self._handle_transient(batch_id, document_id, attempt, e)

        async with self._session_factory() as session:
            result = await self._chunk_builder.write(session, document_id, batch_index, planned)
            metrics = result.model_dump()
            metrics["processing_time_ms"] = int((time.perf_counter() - started) * 1000)
            if not await batch_crud.mark_completed(session, batch_id, metrics):
                # Released by reconciliation while we were extracting; the new owner writes the chunks
                await session.rollback()
                logger.warning(
                    f"{__name__}:process_batch - Lost batch ownership before completion, discarding chunks",
                    extra={"batch_id": str(batch_id)},
                )
                return BatchOutcome.SKIPPED
            await session.commit()

        logger.info(
            f"{__name__}:process_batch - Batch completed",
            extra={
                "batch_id": str(batch_id),
                "document_id": str(document_id),
                "batch_index": batch_index,
                "chunks_created": result.chunks_created,
                "processing_time_ms": metrics["processing_time_ms"],
            },
        )
        await self._advance(document_id)
        return BatchOutcome.COMPLETED

    async def _advance(self, document_id: uuid.UUID) -> None:
        """Schedule the next pending batch, or run the completion check."""
        async with self._session_factory() as session:
            next_batch = await batch_crud.next_pending(session, document_id)
            counts = await batch_crud.count_by_status(session, document_id)

        if next_batch is not None:
            self._scheduler.schedule_batch(next_batch.id)
            return
        if counts[BatchStatus.PROCESSING] == 0:
            await self.complete_document(document_id)

    async def complete_document(self, document_id: uuid.UUID) -> bool:
        """
        Move a processing document to chunked once every batch is completed.

        Writes the aggregated processing report and schedules the embedding
        drain and the enrichment run. A document without any chunk is failed,
        since it could never become ready.

        Args:
            document_id: Document UUID

        Returns:
            bool: True if this call performed the processing -> chunked transition
        """
        async with self._session_factory() as session:
            counts = await batch_crud.count_by_status(session, document_id)
            total = sum(counts.values())
            if total == 0 or counts[BatchStatus.COMPLETED] != total:
                return False

            report = await batch_crud.aggregate_metrics(session, document_id)
            if report["chunks_created"] == 0:
                failed = await document_crud.mark_failed(
                    session,
                    document_id,
                    DocumentProcessingError("No content extracted from document", str(document_id)),
                )
                await session.commit()
                if failed:
                    logger.warning(
                        f"{__name__}:complete_document - No chunks extracted, document failed",
                        extra={"document_id": str(document_id)},
                    )
                return False

            transitioned = await document_crud.transition_status(
                session,
                document_id,
                DocumentStatus.PROCESSING,
                DocumentStatus.CHUNKED,
                processing_report=report,
            )
            await session.commit()

        if not transitioned:
            return False

        logger.info(
            f"{__name__}:complete_document - Document chunked",
            extra={
                "document_id": str(document_id),
                "chunks_created": report["chunks_created"],
                "visual_elements_enqueued": report["visual_elements_enqueued"],
            },
        )
        self._scheduler.schedule_drain(document_id)
        if report["visual_elements_enqueued"]:
            self._scheduler.schedule_enrichment(document_id)
        return True

    async def _handle_transient(
        self,
        batch_id: uuid.UUID,
        document_id: uuid.UUID,
        attempt: int,
        error: BaseException,
    ) -> BatchOutcome:
        log_exception_with_context(
            logger,
            f"{__name__}:process_batch - Batch attempt {attempt} failed",
            error,
            batch_id=str(batch_id),
            document_id=str(document_id),
        )
        async with self._session_factory() as session:
            await document_crud.record_error(session, document_id, error)
            if attempt < self._settings.max_batch_attempts:
                released = await batch_crud.release_for_retry(session, batch_id, error)
                await session.commit()
                if released:
                    self._scheduler.schedule_batch(batch_id, delay=self._settings.retry_delay_seconds)
                    return BatchOutcome.RETRY_SCHEDULED
                return BatchOutcome.SKIPPED

            await batch_crud.mark_failed(session, batch_id, error)
            await document_crud.mark_failed(session, document_id, error)
            await session.commit()

        logger.error(
            f"{__name__}:process_batch - Batch exhausted {attempt} attempts, document failed",
            extra={"batch_id": str(batch_id), "document_id": str(document_id)},
        )
        return BatchOutcome.FAILED

    async def _handle_structural(
        self,
        batch_id: uuid.UUID,
        document_id: uuid.UUID,
        error: BaseException,
    ) -> BatchOutcome:
        log_exception_with_context(
            logger,
            f"{__name__}:process_batch - Structural failure, document failed",
            error,
            batch_id=str(batch_id),
            document_id=str(document_id),
        )
        async with self._session_factory() as session:
            await batch_crud.mark_failed(session, batch_id, error)
            await document_crud.mark_failed(session, document_id, error)
            await session.commit()
        return BatchOutcome.FAILED

    async def reconcile(self) -> ReconcileReport:
        """
        Repair documents and batches whose chain was dropped.

        Restarts documents that made no progress, releases stale processing
        batches, reschedules pending batches and completes documents whose
        batches all finished. Chunks and enrichment items abandoned in
        processing go back to pending (or fail once their attempts are used
        up) before readiness is rechecked and drains are rescheduled. Failed
        documents are never touched.

        Returns:
            ReconcileReport: What the sweep repaired
        """
        report = ReconcileReport()
        cutoff = utc_now() - timedelta(seconds=self._settings.stale_batch_seconds)

        # Before releasing stale batches, so a released batch keeps its attempt count
        await self._reset_stuck_documents(report, cutoff)

        async with self._session_factory() as session:
            released, exhausted = await batch_crud.reset_stale_processing(
                session, cutoff, self._settings.max_batch_attempts
            )
            for batch in exhausted:
                await document_crud.mark_failed(
                    session,
                    batch.document_id,
                    TimeoutError("Batch abandoned by its worker after exhausting its attempts"),
                )
            await session.commit()
        report.batches_released = len(released)
        report.batches_failed = len(exhausted)

        await self._reschedule_pending_batches(report)

        async with self._session_factory() as session:
            settled = await document_crud.get_processing_with_settled_batches(session)
            settled_ids = [document.id for document in settled]
        for document_id in settled_ids:
            if await self.complete_document(document_id):
                report.documents_completed.append(document_id)

        await self._reset_stale_chunk_work(report, cutoff)

        async with self._session_factory() as session:
            unready = await document_crud.get_unready_with_all_chunks_ready(session)
            unready_ids = [document.id for document in unready]
        for document_id in unready_ids:
            if await check_document_ready(self._session_factory, document_id):
                report.documents_marked_ready.append(document_id)

        async with self._session_factory() as session:
            pending_documents = await chunk_crud.documents_with_pending(session)
            drain_ids = [
                document_id
                for document_id in pending_documents
                if document_id not in report.documents_completed
                and await document_crud.get_status(session, document_id) == DocumentStatus.CHUNKED
            ]
            pending_enrichment = await enrichment_crud.count_pending(session)
        for document_id in drain_ids:
            self._scheduler.schedule_drain(document_id)
            report.drains_rescheduled.append(document_id)
        if pending_enrichment:
            self._scheduler.schedule_enrichment(None)
            report.enrichment_rescheduled = True

        logger.info(
            f"{__name__}:reconcile - Sweep finished",
            extra=report.model_dump(mode="json"),
        )
        return report

    async def _reset_stale_chunk_work(self, report: ReconcileReport, cutoff: datetime) -> None:
        async with self._session_factory() as session:
            released_chunks = await chunk_crud.reset_stale_processing(session, cutoff)
            released_items, exhausted_items = await enrichment_crud.reset_stale_processing(
                session, cutoff, self._settings.max_enrichment_attempts
            )
            for item in exhausted_items:
                await chunk_crud.mark_failed(
                    session,
                    item.chunk_id,
                    TimeoutError("Enrichment abandoned by its worker after exhausting its attempts"),
                    expected=(EmbeddingStatus.WAITING_ENRICHMENT,),
                )
            await session.commit()
        report.chunks_released = len(released_chunks)
        report.enrichment_released = len(released_items)
        report.enrichment_failed = len(exhausted_items)

    async def _reset_stuck_documents(self, report: ReconcileReport, cutoff: datetime) -> None:
        async with self._session_factory() as session:
            stuck = await document_crud.get_stuck_without_chunks(session, cutoff)
            stuck_ids = [document.id for document in stuck]

        for document_id in stuck_ids:
            async with self._session_factory() as session:
                reset = await document_crud.transition_status(
                    session,
                    document_id,
                    (DocumentStatus.PROCESSING, DocumentStatus.CHUNKED),
                    DocumentStatus.INGESTED,
                )
                if not reset:
                    await session.rollback()
                    continue
                await batch_crud.delete_for_document(session, document_id)
                await session.commit()
                document = await document_crud.get_by_id(session, document_id)

            logger.warning(
                f"{__name__}:reconcile - Document made no progress, restarting",
                extra={"document_id": str(document_id)},
            )
            try:
                page_count = document.page_count or await self.count_pages(document)
            except Exception as e:
                async with self._session_factory() as session:
                    await document_crud.mark_failed(session, document_id, e)
                    await session.commit()
                log_exception_with_context(
                    logger,
                    f"{__name__}:reconcile - Could not count pages on restart, document failed",
                    e,
                    document_id=str(document_id),
                )
                continue

            await self.split_into_batches(document_id, page_count)
            await self.schedule_first_batch(document_id)
            report.documents_reset.append(document_id)

    async def _reschedule_pending_batches(self, report: ReconcileReport) -> None:
        async with self._session_factory() as session:
            pending = await batch_crud.get_pending(session)
            first_pending: dict[uuid.UUID, uuid.UUID] = {}
            for batch in pending:
                if batch.document_id in report.documents_reset:
                    continue
                first_pending.setdefault(batch.document_id, batch.id)

            idle: list[uuid.UUID] = []
            for document_id, batch_id in first_pending.items():
                counts = await batch_crud.count_by_status(session, document_id)
                if counts[BatchStatus.PROCESSING] == 0:
                    idle.append(batch_id)

        for batch_id in idle:
            self._scheduler.schedule_batch(batch_id)
        report.batches_rescheduled = len(idle)
