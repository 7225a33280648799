"""
Markdown extraction adapter.

Parses structured markdown (parser output, imported docs, transcripts) into
heading / paragraph / table / code_block / list / figure / image elements,
tracking the h1..h3 heading hierarchy for every element. Lines containing
only "---" separate pages.

Dependencies: knowledge_backend.boundary.extraction.base_extractor
System role: Extraction Adapter for markdown and transcript sources
"""

import logging
import re

from knowledge_backend.boundary.extraction.base_extractor import (
    ElementType,
    ExtractedElement,
    PageRange,
)
from knowledge_backend.core.exceptions import ExtractionError

logger = logging.getLogger(__name__)

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*$")
LIST_RE = re.compile(r"^(\d+\.|[-*+])\s")
DATA_IMAGE_RE = re.compile(
    r"^!\[(?P<alt>[^\]]*)\]\(data:(?P<media>[\w/+.-]+);base64,(?P<data>[A-Za-z0-9+/=\s]+)\)$"
)
LINKED_IMAGE_RE = re.compile(r"^!\[(?P<alt>[^\]]*)\]\((?P<url>[^)]+)\)$")
PAGE_SEPARATOR = "---"
MAX_TRACKED_HEADING_LEVEL = 3


def _is_table_line(line: str) -> bool:
    return "|" in line and len(line.split("|")) > 2


def _is_figure_line(line: str) -> bool:
    return line.startswith("**Figure") or line.startswith("**Figura")


class _MarkdownParser:
    """Single-pass line parser; one instance per document."""

    def __init__(self, text: str) -> None:
        self.lines = text.splitlines()
        self.page = 1
        self.headings: list[str | None] = [None] * MAX_TRACKED_HEADING_LEVEL
        self.elements: list[ExtractedElement] = []
        self.paragraph: list[str] = []
        self.paragraph_start = 0

    @property
    def heading_path(self) -> list[str]:
        return [heading for heading in self.headings if heading]

    def emit(
        self,
        element_type: ElementType,
        payload: str,
        line_no: int,
        heading_path: list[str] | None = None,
        media_type: str | None = None,
    ) -> None:
        self.elements.append(
            ExtractedElement(
                element_type=element_type,
                page=self.page,
                y=float(line_no),
                payload=payload,
                extraction_order=len(self.elements),
                heading_path=self.heading_path if heading_path is None else heading_path,
                media_type=media_type,
            )
        )

    def flush_paragraph(self) -> None:
        if self.paragraph:
            self.emit(ElementType.PARAGRAPH, "\n".join(self.paragraph), self.paragraph_start)
            self.paragraph = []

    def collect(self, start: int, predicate) -> int:
        """Index of the first line after `start` for which predicate is false."""
        end = start
        while end < len(self.lines) and predicate(self.lines[end].strip()):
            end += 1
        return end

    def parse(self) -> list[ExtractedElement]:
        i = 0
        while i < len(self.lines):
            line = self.lines[i].strip()

            if line == PAGE_SEPARATOR:
                self.flush_paragraph()
                self.page += 1
                i += 1
                continue

            if not line:
                self.flush_paragraph()
                i += 1
                continue

            if line.startswith("```"):
                self.flush_paragraph()
                end = i + 1
                while end < len(self.lines) and not self.lines[end].strip().startswith("```"):
                    end += 1
                block = "\n".join(self.lines[i : end + 1])
                self.emit(ElementType.CODE_BLOCK, block, i)
                i = end + 1
                continue

            heading = HEADING_RE.match(line)
            if heading:
                self.flush_paragraph()
                level = len(heading.group(1))
                title = heading.group(2).strip()
                if level <= MAX_TRACKED_HEADING_LEVEL:
                    self.headings[level - 1] = title
                    for deeper in range(level, MAX_TRACKED_HEADING_LEVEL):
                        self.headings[deeper] = None
                    parents = [h for h in self.headings[: level - 1] if h]
                else:
                    parents = self.heading_path
                self.emit(ElementType.HEADING, title, i, heading_path=parents)
                i += 1
                continue

            image = DATA_IMAGE_RE.match(line)
            if image:
                self.flush_paragraph()
                self.emit(
                    ElementType.IMAGE,
                    re.sub(r"\s+", "", image.group("data")),
                    i,
                    media_type=image.group("media"),
                )
                i += 1
                continue

            linked = LINKED_IMAGE_RE.match(line)
            if linked:
                # Remote images cannot be annotated; keep their alt text as a figure
                self.flush_paragraph()
                self.emit(ElementType.FIGURE, linked.group("alt") or linked.group("url"), i)
                i += 1
                continue

            if _is_figure_line(line):
                self.flush_paragraph()
                end = self.collect(i + 1, lambda s: bool(s) and s != PAGE_SEPARATOR)
                self.emit(ElementType.FIGURE, "\n".join(self.lines[i:end]).strip(), i)
                i = end
                continue

            if _is_table_line(line):
                self.flush_paragraph()
                end = self.collect(i, _is_table_line)
                self.emit(ElementType.TABLE, "\n".join(self.lines[i:end]).strip(), i)
                i = end
                continue

            if LIST_RE.match(line):
                self.flush_paragraph()
                end = i + 1
                while end < len(self.lines):
                    raw = self.lines[end]
                    stripped = raw.strip()
                    continuation = raw[:1].isspace() and stripped
                    if not (LIST_RE.match(stripped) or continuation):
                        break
                    end += 1
                self.emit(ElementType.LIST, "\n".join(self.lines[i:end]).rstrip(), i)
                i = end
                continue

            if not self.paragraph:
                self.paragraph_start = i
            self.paragraph.append(line)
            i += 1

        self.flush_paragraph()
        return self.elements


class MarkdownExtractionAdapter:
    """
    Parse markdown text into layout elements.

    Markdown is processed as a single batch; page numbers come from "---"
    separators and are informational.
    """

    paginated = False

    @staticmethod
    def _decode(source: bytes | str) -> str:
        if isinstance(source, bytes):
            return source.decode("utf-8", errors="replace")
        return source

    async def count_pages(self, source: bytes | str) -> int:
        """Number of "---" separated pages (at least 1)."""
        text = self._decode(source)
        separators = sum(1 for line in text.splitlines() if line.strip() == PAGE_SEPARATOR)
        return separators + 1

    async def extract(
        self,
        source: bytes | str,
        page_range: PageRange | None = None,
    ) -> list[ExtractedElement]:
        """
        Parse the whole markdown document.

        Args:
            source: Markdown text or UTF-8 bytes
            page_range: Ignored (markdown is not paginated)

        Returns:
            list[ExtractedElement]: Elements in document order

        Raises:
            ExtractionError: When the source is empty
        """
        text = self._decode(source)
        if not text.strip():
            raise ExtractionError("Markdown source is empty", retryable=False)

        elements = _MarkdownParser(text).parse()
        logger.info(
            f"{__name__}:extract - Parsed {len(elements)} markdown elements",
            extra={"element_count": len(elements)},
        )
        return elements
