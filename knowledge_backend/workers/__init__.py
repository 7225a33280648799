"""
Celery workers module.

Runs batches, embedding drains and enrichment runs outside the API process,
plus the periodic reconciliation sweep, enrichment poll and embedding sweep.

Dependencies: celery, python-dotenv, knowledge_backend.configs
System role: Background task processing
"""

from celery import Celery
from celery.signals import setup_logging
from dotenv import load_dotenv

from knowledge_backend.configs import get_settings
from knowledge_backend.observability.logger import configure_logging

# LangChain clients read provider keys straight from os.environ
load_dotenv()

PROCESS_BATCH_TASK = "knowledge_backend.process_batch"
DRAIN_EMBEDDINGS_TASK = "knowledge_backend.drain_embeddings"
PROCESS_ENRICHMENT_TASK = "knowledge_backend.process_enrichment"
RECONCILE_TASK = "knowledge_backend.reconcile"

settings = get_settings()
celery_config = settings.celery

celery_app = Celery(
    "knowledge_backend",
    broker=celery_config.broker_url,
    backend=celery_config.result_backend_url,
    include=["knowledge_backend.workers.tasks.ingestion"],
)

celery_app.conf.update(
    task_serializer=celery_config.task_serializer,
    result_serializer=celery_config.result_serializer,
    accept_content=celery_config.accept_content,
    timezone=celery_config.timezone,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)

celery_app.conf.beat_schedule = {
    "reconcile-ingestion": {
        "task": RECONCILE_TASK,
        "schedule": float(celery_config.reconcile_interval_seconds),
    },
    "poll-enrichment-queue": {
        "task": PROCESS_ENRICHMENT_TASK,
        "schedule": float(celery_config.enrichment_interval_seconds),
        "args": (None,),
    },
    "sweep-embedding-backlog": {
        "task": DRAIN_EMBEDDINGS_TASK,
        "schedule": float(celery_config.embedding_sweep_interval_seconds),
        "args": (None,),
    },
}


@setup_logging.connect
def _configure_worker_logging(**kwargs) -> None:
    """Use the application log format instead of Celery's default handlers."""
    configure_logging(settings.log_level)
