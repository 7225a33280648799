"""
Knowledge API application factory.

Exposes document ingestion, ingestion status, agent knowledge sync and
hybrid search under /api/v1. When work is scheduled in-process (no Celery),
the lifespan also takes over the duties of the beat process: one
reconciliation sweep at startup and a bounded drain of running units at
shutdown.

Dependencies: fastapi, python-dotenv, uvicorn, knowledge_backend.api.routers
System role: HTTP entry point
"""

import asyncio
import logging
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from knowledge_backend.api.deps.dependencies import ServiceCache, get_service_cache
from knowledge_backend.configs import get_settings
from knowledge_backend.core.ingestion.scheduler import AsyncioWorkScheduler
from knowledge_backend.observability.logger import configure_logging
from knowledge_backend.observability.middleware import (
    CorrelationMiddleware,
    RequestLoggingMiddleware,
)

from .routers import agents_router, documents_router, health_router, search_router

# LangChain clients read provider keys straight from os.environ
load_dotenv()

API_PREFIX = "/api/v1"
SHUTDOWN_DRAIN_SECONDS = 30.0

logger = logging.getLogger(__name__)


async def _resume_interrupted_work(cache: ServiceCache) -> None:
    report = await cache.pipeline.orchestrator.reconcile()
    logger.info(
        f"{__name__}:lifespan - Startup reconciliation finished",
        extra=report.model_dump(mode="json"),
    )


async def _drain_in_process_work(scheduler: AsyncioWorkScheduler) -> None:
    try:
        await scheduler.wait_idle(timeout=SHUTDOWN_DRAIN_SECONDS)
    except asyncio.TimeoutError:
        # Abandoned units are picked up by the next startup reconciliation
        logger.warning(
            f"{__name__}:lifespan - {scheduler.pending} units still running at shutdown",
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared services, and run the in-process sweeps when Celery is not in use."""
    cache = get_service_cache()
    scheduler = cache.pipeline.scheduler
    _ = cache.search_engine
    in_process = isinstance(scheduler, AsyncioWorkScheduler)
    logger.info(f"{__name__}:lifespan - Services ready (in_process_scheduler={in_process})")

    if in_process:
        await _resume_interrupted_work(cache)

    yield

    if in_process:
        await _drain_in_process_work(scheduler)
    cache.clear()


def create_app() -> FastAPI:
    """
    Assemble the API: logging, middleware and the four routers.

    Returns:
        FastAPI: Application ready for uvicorn or TestClient
    """
    configure_logging(get_settings().log_level)

    app = FastAPI(
        title="Knowledge Backend API",
        description="Batch document ingestion and hybrid retrieval for agent knowledge bases",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Added last so it runs first and the access log line sees the correlation ID
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationMiddleware)

    for router in (health_router, documents_router, agents_router, search_router):
        app.include_router(router, prefix=API_PREFIX)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("knowledge_backend.api.main:app", host="0.0.0.0", port=8000)
