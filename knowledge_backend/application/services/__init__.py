"""Service orchestrators."""

from .ingestion_service import DocumentStatusReport, IngestionService
from .search_service import SearchService

__all__ = [
    "DocumentStatusReport",
    "IngestionService",
    "SearchService",
]
