"""
Extraction adapter contract.

Defines the element model every parser produces and the protocol the Batch
Orchestrator depends on, so PDF, markdown and image sources are interchangeable.

Dependencies: pydantic
System role: Extraction Adapter interface
"""

import enum
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field


class ElementType(str, enum.Enum):
    """Kinds of layout elements produced by the parsers."""

    HEADING = "heading"
    PARAGRAPH = "paragraph"
    TABLE = "table"
    CODE_BLOCK = "code_block"
    LIST = "list"
    FIGURE = "figure"
    IMAGE = "image"
    TABLE_IMAGE = "table_image"


# Elements that must never be split
ATOMIC_ELEMENT_TYPES = frozenset({ElementType.TABLE, ElementType.CODE_BLOCK})

# Elements that need the vision annotator before they can be embedded
VISUAL_ELEMENT_TYPES = frozenset({ElementType.IMAGE, ElementType.TABLE_IMAGE})


class PageRange(BaseModel):
    """1-indexed inclusive page range of one batch."""

    start: int = Field(ge=1, description="First page (inclusive)")
    end: int = Field(ge=1, description="Last page (inclusive)")

    def contains(self, page: int | None) -> bool:
        """Whether a page number falls inside the range."""
        return page is not None and self.start <= page <= self.end


class ExtractedElement(BaseModel):
    """
    One layout element returned by a parser.

    Attributes:
        element_type: Element kind
        page: Absolute 1-indexed page (None for non-paginated sources)
        y: Vertical position on the page (top to bottom)
        x: Horizontal position on the page (left to right)
        payload: Text/markdown, or base64 data for visual elements
        extraction_order: Order in which the parser emitted the element
        heading_path: Enclosing headings, outermost first
        media_type: MIME type of visual payloads
    """

    element_type: ElementType
    page: int | None = None
    y: float = 0.0
    x: float = 0.0
    payload: str = ""
    extraction_order: int = 0
    heading_path: list[str] = Field(default_factory=list)
    media_type: str | None = None

    @property
    def is_visual(self) -> bool:
        return self.element_type in VISUAL_ELEMENT_TYPES

    @property
    def is_atomic(self) -> bool:
        return self.element_type in ATOMIC_ELEMENT_TYPES


@runtime_checkable
class ExtractionAdapter(Protocol):
    """
    Parser boundary used by the Batch Orchestrator.

    Attributes:
        paginated: False when the source is processed as one batch without a page range
    """

    paginated: bool

    async def count_pages(self, source: bytes | str) -> int:
        """Number of pages in the source (1 for single-page sources)."""
        ...

    async def extract(
        self,
        source: bytes | str,
        page_range: PageRange | None = None,
    ) -> list[ExtractedElement]:
        """
        Extract the layout elements of a page range.

        Raises:
            ExtractionError: When the parser fails
        """
        ...
