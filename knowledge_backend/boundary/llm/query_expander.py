"""
LLM query expander.

Rewrites a financial search query with SEC-filing synonyms and related line
items. Single attempt: the caller falls back to a static dictionary.

Dependencies: langchain_google_genai, langchain_core
System role: Expansion boundary for the Query Expansion Cache
"""

import asyncio
import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from knowledge_backend.boundary.llm.vision_annotator import message_text
from knowledge_backend.configs import get_settings
from knowledge_backend.core.exceptions import QueryExpansionError

logger = logging.getLogger(__name__)

EXPANSION_PROMPT = """Expand this financial query with synonyms and related terms found in SEC filings (10-K, 10-Q, 8-K).
Add:
- GAAP/IFRS equivalent terms
- Common variations in corporate filings
- Relevant time period formats (e.g., Q2 2023 -> second quarter June 30 2023)
- Related line items that might contain the answer

Return ONLY the expanded query as a single line, no explanation or formatting.

Query: "{query}\""""


class LLMQueryExpander:
    """Expand queries with a small chat model."""

    def __init__(self, model: BaseChatModel, timeout_seconds: float = 5.0) -> None:
        self._model = model
        self._timeout = timeout_seconds

    async def expand(self, query: str) -> str:
        """
        Expand one query.

        Args:
            query: User query

        Returns:
            str: Single-line expanded query

        Raises:
            QueryExpansionError: When the model fails, times out or returns nothing
        """
        message = HumanMessage(content=EXPANSION_PROMPT.format(query=query))
        try:
            response = await asyncio.wait_for(self._model.ainvoke([message]), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            raise QueryExpansionError(f"Query expansion timed out after {self._timeout}s") from e
        except Exception as e:
            raise QueryExpansionError(f"Query expansion failed: {e}") from e

        expanded = " ".join(message_text(response.content).split())
        if not expanded:
            raise QueryExpansionError("Query expansion returned an empty response")
        return expanded


def get_query_expander() -> LLMQueryExpander:
    """Build the expander from settings."""
    settings = get_settings()
    model = ChatGoogleGenerativeAI(
        model=settings.llm.expansion_model,
        temperature=settings.llm.expansion_temperature,
        max_output_tokens=settings.llm.expansion_max_tokens,
        google_api_key=settings.llm.google_api_key or None,
    )
    return LLMQueryExpander(model, timeout_seconds=settings.retrieval.expansion_timeout_seconds)
