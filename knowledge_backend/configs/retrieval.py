"""
Retrieval configuration.

Similarity floor, candidate caps and the intent boost table used by the
Hybrid Search Engine. The boost table is plain configuration data and can be
overridden with a JSON document in RETRIEVAL_BOOST_TABLE.

Dependencies: pydantic, pydantic_settings
System role: Hybrid retrieval configuration
"""

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from knowledge_backend.configs.base import BaseSettings

# intent -> chunk_type -> multiplier
DEFAULT_BOOST_TABLE: dict[str, dict[str, float]] = {
    "filing_metadata": {
        "cover_page": 3.0,
        "header": 2.5,
        "exhibit": 2.0,
        "text": 1.2,
        "table": 0.6,
        "visual": 0.5,
    },
    "balance_sheet_metric": {
        "balance_sheet": 2.5,
        "financial_statement": 2.0,
        "table": 1.8,
        "visual": 1.5,
        "text": 1.0,
    },
    "income_statement_metric": {
        "income_statement": 2.5,
        "financial_statement": 2.0,
        "table": 1.8,
        "visual": 1.5,
        "text": 0.9,
    },
    "cash_flow_metric": {
        "cash_flow_statement": 2.5,
        "financial_statement": 2.0,
        "table": 1.8,
        "visual": 1.5,
        "text": 0.9,
    },
    "segment_analysis": {
        "segment": 2.0,
        "table": 1.8,
        "visual": 1.5,
        "text": 1.0,
    },
    "general": {},
}


class RetrievalSettings(BaseSettings):
    """Settings for hybrid retrieval and query expansion."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RETRIEVAL_",
        case_sensitive=False,
        extra="ignore",
    )

    similarity_threshold: float = Field(
        default=0.05,
        description="Minimum cosine similarity for vector candidates",
    )
    candidate_multiplier: int = Field(
        default=2,
        ge=1,
        description="Candidates fetched per search leg = limit * multiplier",
    )
    default_limit: int = Field(default=5, description="Default number of results")
    max_limit: int = Field(default=50, description="Upper bound on requested results")
    expansion_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for the LLM query expander",
    )
    search_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for each vector/keyword search leg",
    )
    text_search_config: str = Field(
        default="english",
        description="PostgreSQL text search configuration for keyword search",
    )
    boost_table: dict[str, dict[str, float]] = Field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_BOOST_TABLE.items()},
        description="Intent boost table: intent -> chunk type -> multiplier",
    )
