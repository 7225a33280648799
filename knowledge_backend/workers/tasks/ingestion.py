"""
Ingestion Celery tasks.

Each task runs exactly one pipeline unit under asyncio.run() with its own
unpooled engine, then returns a JSON-serialisable summary. Retries are owned
by the ledger (batch attempt counts, reconciliation), not by Celery.

Dependencies: celery, sqlalchemy, knowledge_backend.core.ingestion
System role: Async pipeline units executed by Celery workers
"""

import asyncio
import logging
import uuid
from typing import Awaitable, Callable, TypeVar

from knowledge_backend.boundary.db.connection import create_task_engine, session_factory_for
from knowledge_backend.core.ingestion.pipeline import IngestionPipeline, build_pipeline
from knowledge_backend.workers import (
    DRAIN_EMBEDDINGS_TASK,
    PROCESS_BATCH_TASK,
    PROCESS_ENRICHMENT_TASK,
    RECONCILE_TASK,
    celery_app,
)
from knowledge_backend.workers.scheduler import CeleryWorkScheduler

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _uuid_or_none(value: str | None) -> uuid.UUID | None:
    return uuid.UUID(value) if value else None


async def run_with_pipeline(work: Callable[[IngestionPipeline], Awaitable[T]]) -> T:
    """
    Build a Celery-scheduled pipeline, run one unit and dispose the engine.

    Args:
        work: Coroutine function receiving the pipeline

    Returns:
        Whatever the unit returns
    """
    engine = create_task_engine()
    try:
        pipeline = build_pipeline(session_factory=session_factory_for(engine), scheduler=CeleryWorkScheduler())
        return await work(pipeline)
    finally:
        await engine.dispose()


@celery_app.task(name=PROCESS_BATCH_TASK)
def process_batch(batch_id: str) -> dict:
    """
    Process one batch.

    Args:
        batch_id: Batch UUID as string

    Returns:
        dict: Batch ID and outcome
    """
    outcome = asyncio.run(
        run_with_pipeline(lambda pipeline: pipeline.orchestrator.process_batch(uuid.UUID(batch_id)))
    )
    logger.info(
        f"{__name__}:process_batch - Finished with {outcome.value}",
        extra={"batch_id": batch_id},
    )
    return {"batch_id": batch_id, "outcome": outcome.value}


@celery_app.task(name=DRAIN_EMBEDDINGS_TASK)
def drain_embeddings(document_id: str | None = None) -> dict:
    """
    Run one embedding drain cycle.

    Args:
        document_id: Document UUID as string (None for the global backlog)

    Returns:
        dict: Drain report
    """
    report = asyncio.run(
        run_with_pipeline(
            lambda pipeline: pipeline.embedding_worker.drain(_uuid_or_none(document_id))
        )
    )
    return report.model_dump(mode="json")


@celery_app.task(name=PROCESS_ENRICHMENT_TASK)
def process_enrichment(document_id: str | None = None) -> dict:
    """
    Claim and describe pending visual elements.

    Args:
        document_id: Document UUID as string (None for every document)

    Returns:
        dict: Enrichment report
    """
    report = asyncio.run(
        run_with_pipeline(
            lambda pipeline: pipeline.enrichment_queue.process_pending(
                document_id=_uuid_or_none(document_id)
            )
        )
    )
    return report.model_dump(mode="json")


@celery_app.task(name=RECONCILE_TASK)
def reconcile() -> dict:
    """
    Run the reconciliation sweep.

    Returns:
        dict: Reconcile report
    """
    report = asyncio.run(run_with_pipeline(lambda pipeline: pipeline.orchestrator.reconcile()))
    return report.model_dump(mode="json")
