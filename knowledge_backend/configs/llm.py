"""
Language model configuration.

Explicit model identifiers for every LLM-backed component. Components receive
these values through their constructors instead of reading shared state.

Dependencies: pydantic, pydantic_settings
System role: Model selection for embeddings, vision, expansion and summaries
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from knowledge_backend.configs.base import BaseSettings


class LLMSettings(BaseSettings):
    """Google Generative AI model configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LLM_",
        case_sensitive=False,
        extra="ignore",
    )

    google_api_key: str = Field(default="", description="Google AI API key")

    expansion_model: str = Field(
        default="gemini-2.5-flash-lite",
        description="Model used to expand search queries",
    )
    expansion_max_tokens: int = Field(default=200, description="Max tokens for query expansion")
    expansion_temperature: float = Field(default=0.3, description="Temperature for query expansion")

    summary_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used to summarise large tables and code blocks",
    )
    context_model: str = Field(
        default="gemini-2.5-flash-lite",
        description="Model used to classify a document's domain before enrichment",
    )
    vision_model: str = Field(
        default="gemini-2.5-flash",
        description="Multimodal model used to describe images and tables",
    )

    embedding_model: str = Field(
        default="models/gemini-embedding-001",
        description="Google embedding model ID",
    )
    embedding_dimension: int = Field(
        default=1024,
        description="Fixed embedding dimension (must match the chunk vector column)",
    )
