"""
Work scheduling for the ingestion pipeline.

Core components never call each other directly; they ask a WorkScheduler to
run the next unit (a batch, an embedding drain, an enrichment run). The
asyncio implementation runs units as background tasks in the current event
loop; the Celery implementation (knowledge_backend.workers) dispatches tasks.

Dependencies: asyncio (stdlib)
System role: Decouples pipeline stages from their execution backend
"""

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Awaitable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from knowledge_backend.core.ingestion.batch_orchestrator import BatchOrchestrator
    from knowledge_backend.core.ingestion.embedding_worker import EmbeddingWorker
    from knowledge_backend.core.ingestion.enrichment_queue import EnrichmentQueue

logger = logging.getLogger(__name__)


@runtime_checkable
class WorkScheduler(Protocol):
    """Schedules independent pipeline units."""

    def schedule_batch(self, batch_id: uuid.UUID, delay: float = 0.0) -> None:
        """Run BatchOrchestrator.process_batch(batch_id) later, no sooner than `delay` seconds."""
        ...

    def schedule_drain(self, document_id: uuid.UUID | None = None) -> None:
        """Run EmbeddingWorker.drain(document_id) later."""
        ...

    def schedule_enrichment(self, document_id: uuid.UUID | None = None) -> None:
        """Run EnrichmentQueue.process_pending(document_id=...) later."""
        ...


class AsyncioWorkScheduler:
    """
    In-process scheduler backed by asyncio tasks.

    Components are bound after construction because they also hold a
    reference to the scheduler.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()
        self._orchestrator: "BatchOrchestrator | None" = None
        self._embedding_worker: "EmbeddingWorker | None" = None
        self._enrichment_queue: "EnrichmentQueue | None" = None

    def bind(
        self,
        orchestrator: "BatchOrchestrator",
        embedding_worker: "EmbeddingWorker",
        enrichment_queue: "EnrichmentQueue",
    ) -> None:
        """
        Attach the components this scheduler runs.

        Args:
            orchestrator: Batch Orchestrator
            embedding_worker: Embedding Worker
            enrichment_queue: Enrichment Queue
        """
        self._orchestrator = orchestrator
        self._embedding_worker = embedding_worker
        self._enrichment_queue = enrichment_queue

    def _spawn(self, name: str, coro: Awaitable) -> None:
        task = asyncio.get_running_loop().create_task(self._run(name, coro), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, name: str, coro: Awaitable) -> None:
        try:
            await coro
        except Exception as e:
            # Background units have no caller; the ledger already holds their state
            logger.error(
                f"{__name__}:_run - Scheduled unit {name} raised {type(e).__name__}: {e}",
                exc_info=e,
                extra={"unit": name},
            )

    def _require_bound(self) -> None:
        if self._orchestrator is None:
            raise RuntimeError("AsyncioWorkScheduler.bind() must be called before scheduling work")

    def schedule_batch(self, batch_id: uuid.UUID, delay: float = 0.0) -> None:
        self._require_bound()
        if delay > 0:
            self._spawn(f"batch:{batch_id}", self._process_batch_later(batch_id, delay))
        else:
            self._spawn(f"batch:{batch_id}", self._orchestrator.process_batch(batch_id))

    async def _process_batch_later(self, batch_id: uuid.UUID, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._orchestrator.process_batch(batch_id)

    def schedule_drain(self, document_id: uuid.UUID | None = None) -> None:
        self._require_bound()
        self._spawn(f"drain:{document_id}", self._embedding_worker.drain(document_id))

    def schedule_enrichment(self, document_id: uuid.UUID | None = None) -> None:
        self._require_bound()
        self._spawn(
            f"enrichment:{document_id}",
            self._enrichment_queue.process_pending(document_id=document_id),
        )

    @property
    def pending(self) -> int:
        """Number of units still running."""
        return len(self._tasks)

    async def wait_idle(self, timeout: float = 30.0) -> None:
        """
        Wait until every scheduled unit, including units they schedule, has finished.

        Args:
            timeout: Overall timeout in seconds

        Raises:
            asyncio.TimeoutError: If work is still running after the timeout
        """
        async def _drain() -> None:
            while self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)

        await asyncio.wait_for(_drain(), timeout=timeout)
