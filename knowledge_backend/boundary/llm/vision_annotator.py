"""
Vision annotator.

Describes images and table screenshots with a multimodal Gemini model so
visual elements become searchable text.

Dependencies: langchain_google_genai, langchain_core
System role: Vision boundary for the Enrichment Queue
"""

import asyncio
import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from knowledge_backend.configs import get_settings
from knowledge_backend.core.exceptions import EnrichmentError

logger = logging.getLogger(__name__)


def message_text(content) -> str:
    """Flatten a chat message content (str or list of parts) into text."""
    if isinstance(content, str):
        return content.strip()
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts).strip()


class VisionAnnotator:
    """
    Describe a visual element given a prompt.

    No retries: a failed description is terminal for its enrichment item.
    """

    def __init__(self, model: BaseChatModel, timeout_seconds: float = 30.0) -> None:
        """
        Initialize the annotator.

        Args:
            model: Multimodal chat model
            timeout_seconds: Timeout per description
        """
        self._model = model
        self._timeout = timeout_seconds

    async def describe(self, payload: str, media_type: str, prompt: str) -> str:
        """
        Describe one image.

        Args:
            payload: Base64 image data
            media_type: MIME type of the image
            prompt: Domain-aware instructions

        Returns:
            str: Markdown description

        Raises:
            EnrichmentError: When the model fails or returns nothing
            asyncio.TimeoutError: When the call exceeds the timeout
        """
        message = HumanMessage(
            content=[
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": f"data:{media_type};base64,{payload}"},
            ]
        )
        try:
            response = await asyncio.wait_for(self._model.ainvoke([message]), timeout=self._timeout)
        except asyncio.TimeoutError:
            raise
        except Exception as e:
            raise EnrichmentError(f"Vision model call failed: {e}") from e

        description = message_text(response.content)
        if not description:
            raise EnrichmentError("Vision model returned an empty description")

        logger.info(
            f"{__name__}:describe - Description generated",
            extra={"chars": len(description), "media_type": media_type},
        )
        return description


def get_vision_annotator() -> VisionAnnotator:
    """Build the annotator from settings."""
    settings = get_settings()
    model = ChatGoogleGenerativeAI(
        model=settings.llm.vision_model,
        temperature=0.2,
        google_api_key=settings.llm.google_api_key or None,
    )
    return VisionAnnotator(model, timeout_seconds=settings.ingestion.external_call_timeout_seconds)
