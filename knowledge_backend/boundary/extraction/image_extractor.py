"""
Image extraction adapter.

A standalone image is a one-page document made of a single visual element;
its text comes entirely from the vision annotator.

Dependencies: knowledge_backend.boundary.extraction.base_extractor
System role: Extraction Adapter for image sources
"""

import asyncio
import base64
import mimetypes
from pathlib import Path

from knowledge_backend.boundary.extraction.base_extractor import (
    ElementType,
    ExtractedElement,
    PageRange,
)
from knowledge_backend.core.exceptions import ExtractionError

_SIGNATURES = (
    (b"\x89PNG", "image/png"),
    (b"\xff\xd8", "image/jpeg"),
    (b"GIF8", "image/gif"),
    (b"RIFF", "image/webp"),
)


def detect_media_type(data: bytes, name: str | None = None) -> str:
    """Guess the MIME type from magic bytes, then from the file name."""
    for signature, media_type in _SIGNATURES:
        if data.startswith(signature):
            return media_type
    if name:
        guessed = mimetypes.guess_type(name)[0]
        if guessed:
            return guessed
    return "image/png"


class ImageExtractionAdapter:
    """Wrap an image file as a single visual element."""

    paginated = False

    async def count_pages(self, source: bytes | str) -> int:
        return 1

    async def extract(
        self,
        source: bytes | str,
        page_range: PageRange | None = None,
    ) -> list[ExtractedElement]:
        """
        Emit the image as one element.

        Args:
            source: Image bytes or a file path
            page_range: Ignored

        Returns:
            list[ExtractedElement]: A single IMAGE element on page 1

        Raises:
            ExtractionError: When the source is empty or missing
        """
        name = None
        if isinstance(source, str):
            path = Path(source)
            if not path.exists():
                raise ExtractionError(f"File not found: {source}", retryable=False)
            name = path.name
            data = await asyncio.to_thread(path.read_bytes)
        else:
            data = source
        if not data:
            raise ExtractionError("Image source is empty", retryable=False)

        return [
            ExtractedElement(
                element_type=ElementType.IMAGE,
                page=1,
                payload=base64.b64encode(data).decode("ascii"),
                media_type=detect_media_type(data, name),
            )
        ]
