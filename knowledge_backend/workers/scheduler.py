"""
Celery-backed work scheduler.

Dispatches pipeline units by task name so the scheduler can be used from
the API process without importing the task modules.

Dependencies: celery, knowledge_backend.workers
System role: WorkScheduler implementation for distributed execution
"""

import logging
import uuid

from celery import Celery

from knowledge_backend.workers import (
    DRAIN_EMBEDDINGS_TASK,
    PROCESS_BATCH_TASK,
    PROCESS_ENRICHMENT_TASK,
    celery_app,
)

logger = logging.getLogger(__name__)


def _arg(value: uuid.UUID | None) -> str | None:
    return str(value) if value is not None else None


class CeleryWorkScheduler:
    """WorkScheduler that sends each unit to the Celery broker."""

    def __init__(self, app: Celery | None = None) -> None:
        """
        Initialize the scheduler.

        Args:
            app: Celery application (defaults to the package app)
        """
        self._app = app or celery_app

    def _send(self, task_name: str, value: uuid.UUID | None, delay: float = 0.0) -> None:
        options = {"countdown": delay} if delay > 0 else {}
        result = self._app.send_task(task_name, args=[_arg(value)], **options)
        logger.debug(
            f"{__name__}:_send - Dispatched {task_name}",
            extra={"task_id": result.id, "argument": _arg(value), "delay": delay},
        )

    def schedule_batch(self, batch_id: uuid.UUID, delay: float = 0.0) -> None:
        self._send(PROCESS_BATCH_TASK, batch_id, delay)

    def schedule_drain(self, document_id: uuid.UUID | None = None) -> None:
        self._send(DRAIN_EMBEDDINGS_TASK, document_id)

    def schedule_enrichment(self, document_id: uuid.UUID | None = None) -> None:
        self._send(PROCESS_ENRICHMENT_TASK, document_id)
