"""
Celery configuration settings.

Broker/result backend and beat intervals for the background workers that run
batches, enrichment and embedding drains outside the API process.

Dependencies: pydantic, pydantic_settings
System role: Async task queue configuration for ingestion
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from knowledge_backend.configs.base import BaseSettings


class CelerySettings(BaseSettings):
    """Celery broker and schedule configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CELERY_",
        case_sensitive=False,
        extra="ignore",
    )

    broker_url: str = Field(default="redis://localhost:6379/0", description="Broker URL")
    result_backend_url: str = Field(
        default="redis://localhost:6379/1",
        description="Result backend URL",
    )
    task_serializer: str = Field(default="json", description="Task serialization format")
    result_serializer: str = Field(default="json", description="Result serialization format")
    accept_content: list[str] = Field(default=["json"], description="Accepted content types")
    timezone: str = Field(default="UTC", description="Celery timezone")

    reconcile_interval_seconds: int = Field(
        default=300,
        description="Interval of the reconciliation sweep",
    )
    enrichment_interval_seconds: int = Field(
        default=30,
        description="Interval of the enrichment queue poll",
    )
    embedding_sweep_interval_seconds: int = Field(
        default=120,
        description="Interval of the global embedding backlog sweep",
    )
