"""
Document context analyser.

Classifies a document's domain from a text sample so the vision annotator
can be told what to look for in its images.

Dependencies: langchain_google_genai, langchain_core, pydantic
System role: Context boundary for the Enrichment Queue
"""

import asyncio
import json
import logging
import re
from typing import Literal

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from knowledge_backend.boundary.llm.vision_annotator import message_text
from knowledge_backend.configs import get_settings
from knowledge_backend.core.exceptions import EnrichmentError

logger = logging.getLogger(__name__)

CONTEXT_PROMPT = """You prepare instructions for the visual analysis of documents.

Analyse the text sample below and determine:
1. DOMAIN: the precise subject (trading, finance, architecture, engineering, medical, legal, scientific, ...)
2. FOCUS ELEMENTS: which visual details in charts, tables and figures will matter
3. TERMINOLOGY: technical terms used in the document
4. VERBOSITY: "pedantic" for technical documents where every number counts,
   "conceptual" for discursive documents where ideas matter

Answer ONLY with JSON:
{{"domain": "...", "focus_elements": ["..."], "terminology": ["..."], "verbosity": "pedantic" | "conceptual"}}

--- DOCUMENT TEXT ---
{sample}"""

_FENCE_RE = re.compile(r"```(?:json)?")


class DocumentContext(BaseModel):
    """Domain profile of a document, cached on the document row."""

    domain: str = Field(default="general")
    focus_elements: list[str] = Field(default_factory=lambda: ["text", "numbers", "structure"])
    terminology: list[str] = Field(default_factory=list)
    verbosity: Literal["pedantic", "conceptual"] = "conceptual"

    @classmethod
    def fallback(cls) -> "DocumentContext":
        """Generic context used when analysis is impossible."""
        return cls()


class DocumentContextAnalyzer:
    """Ask a chat model for a document's DocumentContext."""

    def __init__(self, model: BaseChatModel, timeout_seconds: float = 30.0) -> None:
        self._model = model
        self._timeout = timeout_seconds

    async def analyze(self, sample: str) -> DocumentContext:
        """
        Analyse a text sample.

        Args:
            sample: Leading text of the document

        Returns:
            DocumentContext: Parsed context (domain lower-cased)

        Raises:
            EnrichmentError: When the model fails or the JSON is unusable
        """
        message = HumanMessage(content=CONTEXT_PROMPT.format(sample=sample))
        try:
            response = await asyncio.wait_for(self._model.ainvoke([message]), timeout=self._timeout)
        except Exception as e:
            raise EnrichmentError(f"Context analysis failed: {type(e).__name__}: {e}") from e

        raw = _FENCE_RE.sub("", message_text(response.content)).strip()
        try:
            context = DocumentContext.model_validate(json.loads(raw))
        except (json.JSONDecodeError, PydanticValidationError) as e:
            raise EnrichmentError(f"Context analysis returned invalid JSON: {e}") from e

        context.domain = context.domain.strip().lower() or "general"
        logger.info(
            f"{__name__}:analyze - Domain detected: {context.domain}",
            extra={"verbosity": context.verbosity},
        )
        return context


def get_context_analyzer() -> DocumentContextAnalyzer:
    """Build the analyser from settings."""
    settings = get_settings()
    model = ChatGoogleGenerativeAI(
        model=settings.llm.context_model,
        temperature=0,
        google_api_key=settings.llm.google_api_key or None,
    )
    return DocumentContextAnalyzer(model, timeout_seconds=settings.ingestion.external_call_timeout_seconds)
