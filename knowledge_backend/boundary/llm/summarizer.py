"""
Element summariser.

Produces short retrieval-oriented summaries of large tables and code blocks.
The summary is what gets embedded; the verbatim element is kept for the
answering model.

Dependencies: langchain_google_genai, langchain_core, tenacity
System role: Summary boundary for the Chunk Builder
"""

import asyncio
import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential_jitter

from knowledge_backend.boundary.llm.vision_annotator import message_text
from knowledge_backend.configs import get_settings

logger = logging.getLogger(__name__)

MAX_SUMMARY_INPUT_CHARS = 6000

TABLE_PROMPT = (
    "Summarise this table in 2-3 sentences for search indexing. Name the metrics, "
    "the periods or categories it covers and the most important values.\n\n{content}"
)
CODE_PROMPT = (
    "Identify the language and main libraries of this code, then summarise in one "
    "sentence what it does.\n\n{content}"
)


class ElementSummarizer:
    """Summarise atomic elements with retries."""

    def __init__(
        self,
        model: BaseChatModel,
        timeout_seconds: float = 30.0,
        max_attempts: int = 3,
    ) -> None:
        self._model = model
        self._timeout = timeout_seconds
        self._max_attempts = max_attempts

    async def summarize(self, content: str, element_type: str) -> str:
        """
        Summarise a table or code block.

        Args:
            content: Verbatim element
            element_type: "table" or "code_block"

        Returns:
            str: Summary text

        Raises:
            ValueError: When the model keeps returning an empty summary
            Exception: Last model error after retries
        """
        template = CODE_PROMPT if element_type == "code_block" else TABLE_PROMPT
        messages = [
            SystemMessage(content="You write concise summaries used to index documents for search."),
            HumanMessage(content=template.format(content=content[:MAX_SUMMARY_INPUT_CHARS])),
        ]

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential_jitter(initial=1, max=8, jitter=1),
            before_sleep=lambda retry_state: logger.warning(
                f"{__name__}:summarize - Retry {retry_state.attempt_number}/{self._max_attempts}"
            ),
            reraise=True,
        ):
            with attempt:
                response = await asyncio.wait_for(self._model.ainvoke(messages), timeout=self._timeout)
                summary = message_text(response.content)
                if not summary:
                    raise ValueError("Empty summary")
                return summary


def get_summarizer() -> ElementSummarizer:
    """Build the summariser from settings."""
    settings = get_settings()
    model = ChatGoogleGenerativeAI(
        model=settings.llm.summary_model,
        temperature=0.2,
        max_output_tokens=200,
        google_api_key=settings.llm.google_api_key or None,
    )
    return ElementSummarizer(model, timeout_seconds=settings.ingestion.external_call_timeout_seconds)
