"""
PDF extraction adapter using pypdf.

Extracts one paragraph element per text block and one image element per
embedded image for a page range. Parsing is blocking, so it runs in a worker
thread.

Dependencies: pypdf, knowledge_backend.boundary.extraction.base_extractor
System role: Extraction Adapter for PDF sources
"""

import asyncio
import base64
import io
import logging
import mimetypes
import re
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from knowledge_backend.boundary.extraction.base_extractor import (
    ElementType,
    ExtractedElement,
    PageRange,
)
from knowledge_backend.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)

_BLOCK_SPLIT = re.compile(r"\n\s*\n")


class PdfExtractionAdapter:
    """Parse PDF pages into text and image elements."""

    paginated = True

    def __init__(self, extract_images: bool = True) -> None:
        """
        Initialize the adapter.

        Args:
            extract_images: Emit embedded images as visual elements
        """
        self._extract_images = extract_images

    async def count_pages(self, source: bytes | str) -> int:
        """
        Count pages in a PDF.

        Args:
            source: PDF bytes or a file path

        Returns:
            int: Number of pages

        Raises:
            ExtractionError: When the PDF cannot be opened
        """
        return await asyncio.to_thread(self._count_pages_sync, source)

    async def extract(
        self,
        source: bytes | str,
        page_range: PageRange | None = None,
    ) -> list[ExtractedElement]:
        """
        Extract elements from a page range.

        Args:
            source: PDF bytes or a file path
            page_range: Pages to extract (all pages when None)

        Returns:
            list[ExtractedElement]: Elements with absolute page numbers

        Raises:
            ExtractionError: When parsing fails
        """
        return await asyncio.to_thread(self._extract_sync, source, page_range)

    def _open(self, source: bytes | str) -> PdfReader:
        try:
            if isinstance(source, bytes):
                return PdfReader(io.BytesIO(source))
            path = Path(source)
            if not path.exists():
                raise ExtractionError(f"File not found: {source}", retryable=False)
            return PdfReader(str(path))
        except PdfReadError as e:
            raise ExtractionError(f"Failed to open PDF: {e}", retryable=False) from e

    def _count_pages_sync(self, source: bytes | str) -> int:
        return len(self._open(source).pages)

    def _extract_sync(
        self,
        source: bytes | str,
        page_range: PageRange | None,
    ) -> list[ExtractedElement]:
        reader = self._open(source)
        total_pages = len(reader.pages)
        start = page_range.start if page_range else 1
        end = min(page_range.end, total_pages) if page_range else total_pages

        elements: list[ExtractedElement] = []
        order = 0
        try:
            for page_number in range(start, end + 1):
                page = reader.pages[page_number - 1]
                text = page.extract_text() or ""
                blocks = [block.strip() for block in _BLOCK_SPLIT.split(text) if block.strip()]

                for position, block in enumerate(blocks):
                    elements.append(
                        ExtractedElement(
                            element_type=ElementType.PARAGRAPH,
                            page=page_number,
                            y=float(position),
                            payload=block,
                            extraction_order=order,
                        )
                    )
                    order += 1

                if not self._extract_images:
                    continue
                for position, image in enumerate(page.images, start=len(blocks)):
                    media_type = mimetypes.guess_type(image.name)[0] or "image/png"
                    elements.append(
                        ExtractedElement(
                            element_type=ElementType.IMAGE,
                            page=page_number,
                            y=float(position),
                            payload=base64.b64encode(image.data).decode("ascii"),
                            extraction_order=order,
                            media_type=media_type,
                        )
                    )
                    order += 1
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(
                f"Failed to parse PDF pages {start}-{end}: {e}",
                details={"page_start": start, "page_end": end},
            ) from e

        logger.info(
            f"{__name__}:extract - Extracted {len(elements)} elements",
            extra={"page_start": start, "page_end": end},
        )
        return elements
