"""API routers."""

from .agents import router as agents_router
from .documents import router as documents_router
from .health import router as health_router
from .search import router as search_router

__all__ = [
    "agents_router",
    "documents_router",
    "health_router",
    "search_router",
]
