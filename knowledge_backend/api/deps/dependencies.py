"""
Dependency injection container.

Factory functions for FastAPI dependencies. Long-lived collaborators
(pipeline, search engine, embedding client) are built lazily once per
process and shared between requests.

Dependencies: knowledge_backend.configs, knowledge_backend.application, knowledge_backend.boundary
System role: DI container for service injection
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from knowledge_backend.application.services import IngestionService, SearchService
from knowledge_backend.boundary.db import get_async_db
from knowledge_backend.configs import Settings, get_settings


class ServiceCache:
    """Container for cached service collaborators."""

    def __init__(self):
        self._embedding_client = None
        self._pipeline = None
        self._search_engine = None

    @property
    def embedding_client(self):
        """Get cached embedding client (shared by ingestion and retrieval)."""
        if self._embedding_client is None:
            from knowledge_backend.boundary.llm.embedding_client import get_embedding_client

            self._embedding_client = get_embedding_client()
        return self._embedding_client

    @property
    def pipeline(self):
        """Get cached ingestion pipeline."""
        if self._pipeline is None:
            from knowledge_backend.core.ingestion.pipeline import build_pipeline

            scheduler = None
            if get_settings().ingestion.scheduler_backend == "celery":
                from knowledge_backend.workers.scheduler import CeleryWorkScheduler

                scheduler = CeleryWorkScheduler()
            self._pipeline = build_pipeline(
                scheduler=scheduler,
                embedding_client=self.embedding_client,
            )
        return self._pipeline

    @property
    def search_engine(self):
        """Get cached hybrid search engine."""
        if self._search_engine is None:
            from knowledge_backend.boundary.db.connection import get_async_session_factory
            from knowledge_backend.boundary.llm.query_expander import get_query_expander
            from knowledge_backend.boundary.search import PgSearchBackend
            from knowledge_backend.core.retrieval import HybridSearchEngine, QueryExpansionCache

            settings = get_settings().retrieval
            session_factory = get_async_session_factory()
            self._search_engine = HybridSearchEngine(
                QueryExpansionCache(session_factory, get_query_expander()),
                PgSearchBackend(session_factory, settings.text_search_config),
                self.embedding_client,
                settings=settings,
            )
        return self._search_engine

    def clear(self) -> None:
        """Clear all cached instances."""
        self._embedding_client = None
        self._pipeline = None
        self._search_engine = None


# Global service cache
_service_cache = ServiceCache()


def get_service_cache() -> ServiceCache:
    """Get service cache singleton."""
    return _service_cache


@lru_cache
def get_settings_dependency() -> Settings:
    """Get settings singleton."""
    return get_settings()


def get_ingestion_service(db: AsyncSession = Depends(get_async_db)) -> IngestionService:
    """
    Get ingestion service instance.

    Args:
        db: Async database session (injected via Depends)

    Returns:
        IngestionService: Service bound to the cached pipeline
    """
    return IngestionService(db=db, pipeline=get_service_cache().pipeline)


def get_search_service() -> SearchService:
    """
    Get search service instance.

    Returns:
        SearchService: Service bound to the cached search engine
    """
    return SearchService(engine=get_service_cache().search_engine)
