"""
Shared settings root for the knowledge backend.

Every config section (database, ingestion, retrieval, llm, celery) derives
from this class so they all read the same .env file and agree on the
deployment environment.

Dependencies: pydantic_settings
System role: Root of the configuration hierarchy
"""

from pydantic import Field
from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict

KNOWN_ENVIRONMENTS = ("development", "test", "staging", "production")


class BaseSettings(PydanticBaseSettings):
    """Settings root: .env loading plus the environment and log level knobs."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        # Sections share one .env, so each ignores the others' keys
        extra="ignore",
    )

    environment: str = Field(
        default="development",
        description=f"Deployment environment, one of {', '.join(KNOWN_ENVIRONMENTS)}",
    )
    debug: bool = Field(default=False, description="Verbose SQL echo and debug logging")
    log_level: str = Field(default="INFO", description="Root log level name")
