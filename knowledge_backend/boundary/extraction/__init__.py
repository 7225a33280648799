"""
Extraction boundary: parsers that turn sources into layout elements.

Exports:
  - ExtractionAdapter, ExtractedElement, ElementType, PageRange: Contract
  - PdfExtractionAdapter, MarkdownExtractionAdapter, ImageExtractionAdapter: Parsers
  - get_extraction_adapter(): Source type to adapter factory

Dependencies: pypdf
System role: Extraction Adapter used by the Batch Orchestrator
"""

from knowledge_backend.boundary.db.models.document_model import SourceType
from knowledge_backend.boundary.extraction.base_extractor import (
    ATOMIC_ELEMENT_TYPES,
    VISUAL_ELEMENT_TYPES,
    ElementType,
    ExtractedElement,
    ExtractionAdapter,
    PageRange,
)
from knowledge_backend.boundary.extraction.image_extractor import ImageExtractionAdapter
from knowledge_backend.boundary.extraction.markdown_extractor import MarkdownExtractionAdapter
from knowledge_backend.boundary.extraction.pdf_extractor import PdfExtractionAdapter


def get_extraction_adapter(source_type: SourceType) -> ExtractionAdapter:
    """
    Get the parser for a source type.

    Transcripts are plain text and go through the markdown parser.

    Args:
        source_type: Document source type

    Returns:
        ExtractionAdapter: Parser instance
    """
    if source_type == SourceType.PDF:
        return PdfExtractionAdapter()
    if source_type == SourceType.IMAGE:
        return ImageExtractionAdapter()
    return MarkdownExtractionAdapter()


__all__ = [
    "ATOMIC_ELEMENT_TYPES",
    "VISUAL_ELEMENT_TYPES",
    "ElementType",
    "ExtractedElement",
    "ExtractionAdapter",
    "PageRange",
    "PdfExtractionAdapter",
    "MarkdownExtractionAdapter",
    "ImageExtractionAdapter",
    "get_extraction_adapter",
]
