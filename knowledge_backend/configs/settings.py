"""
Top-level settings object for the knowledge backend.

Each concern keeps its own env prefix (POSTGRES_, INGESTION_, RETRIEVAL_,
LLM_, CELERY_); Settings only groups them so callers can reach everything
through one cached object.

Dependencies: pydantic, knowledge_backend.configs
System role: Single configuration entry point for the API and the workers
"""

from functools import lru_cache

from pydantic import Field

from knowledge_backend.configs.base import BaseSettings
from knowledge_backend.configs.celery_config import CelerySettings
from knowledge_backend.configs.database import DatabaseSettings
from knowledge_backend.configs.ingestion import IngestionSettings
from knowledge_backend.configs.llm import LLMSettings
from knowledge_backend.configs.retrieval import RetrievalSettings


class Settings(BaseSettings):
    """Every config section, each read from the environment when Settings is built."""

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    celery: CelerySettings = Field(default_factory=CelerySettings)


@lru_cache
def get_settings() -> Settings:
    """
    Process-wide settings, read once.

    Tests that change environment variables call ``get_settings.cache_clear()``.

    Returns:
        Settings: Cached instance
    """
    return Settings()
