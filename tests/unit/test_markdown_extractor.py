"""
Test suite for the markdown extraction adapter.

System role: Verification of markdown parsing into layout elements
"""

import pytest

from knowledge_backend.boundary.extraction import get_extraction_adapter
from knowledge_backend.boundary.extraction.base_extractor import ElementType
from knowledge_backend.boundary.extraction.markdown_extractor import MarkdownExtractionAdapter
from knowledge_backend.boundary.db.models.document_model import SourceType
from knowledge_backend.core.exceptions import ExtractionError

SAMPLE = """# Annual Report

Intro paragraph line one
line two.

## Results

| Metric | 2023 |
| --- | --- |
| Revenue | 100 |

- first item
- second item

---

### Outlook

```python
print("hello")
```

![chart](data:image/png;base64,iVBORw0KGgo=)

![remote chart](https://example.com/chart.png)
"""


@pytest.fixture
def adapter() -> MarkdownExtractionAdapter:
    return MarkdownExtractionAdapter()


class TestMarkdownExtraction:
    """Test suite for MarkdownExtractionAdapter.extract()."""

    @pytest.mark.asyncio
    async def test_extract_should_emit_elements_in_document_order(
        self, adapter: MarkdownExtractionAdapter
    ) -> None:
        """Test every block kind is recognised."""
        # Act
        elements = await adapter.extract(SAMPLE)

        # Assert
        assert [e.element_type for e in elements] == [
            ElementType.HEADING,
            ElementType.PARAGRAPH,
            ElementType.HEADING,
            ElementType.TABLE,
            ElementType.LIST,
            ElementType.HEADING,
            ElementType.CODE_BLOCK,
            ElementType.IMAGE,
            ElementType.FIGURE,
        ]
        assert [e.extraction_order for e in elements] == list(range(len(elements)))

    @pytest.mark.asyncio
    async def test_extract_should_track_heading_path_and_pages(
        self, adapter: MarkdownExtractionAdapter
    ) -> None:
        """Test heading context and page separators."""
        # Act
        elements = await adapter.extract(SAMPLE)
        table = next(e for e in elements if e.element_type == ElementType.TABLE)
        code = next(e for e in elements if e.element_type == ElementType.CODE_BLOCK)

        # Assert
        assert table.heading_path == ["Annual Report", "Results"]
        assert table.page == 1
        assert code.heading_path == ["Annual Report", "Results", "Outlook"]
        assert code.page == 2

    @pytest.mark.asyncio
    async def test_extract_should_join_paragraph_lines(self, adapter: MarkdownExtractionAdapter) -> None:
        """Test consecutive lines form one paragraph."""
        # Act
        elements = await adapter.extract(SAMPLE)

        # Assert
        assert elements[1].payload == "Intro paragraph line one\nline two."

    @pytest.mark.asyncio
    async def test_extract_should_keep_inline_image_data(self, adapter: MarkdownExtractionAdapter) -> None:
        """Test base64 images become visual elements with their media type."""
        # Act
        elements = await adapter.extract(SAMPLE)
        image = next(e for e in elements if e.element_type == ElementType.IMAGE)
        figure = next(e for e in elements if e.element_type == ElementType.FIGURE)

        # Assert
        assert image.payload == "iVBORw0KGgo="
        assert image.media_type == "image/png"
        assert image.is_visual
        assert figure.payload == "remote chart"

    @pytest.mark.asyncio
    async def test_extract_should_reject_empty_source(self, adapter: MarkdownExtractionAdapter) -> None:
        """Test an empty document is a structural failure."""
        # Act / Assert
        with pytest.raises(ExtractionError) as exc_info:
            await adapter.extract("   \n")
        assert exc_info.value.retryable is False

    @pytest.mark.asyncio
    async def test_count_pages_should_count_separators(self, adapter: MarkdownExtractionAdapter) -> None:
        """Test page count is separators plus one."""
        # Act
        pages = await adapter.count_pages(SAMPLE.encode("utf-8"))

        # Assert
        assert pages == 2

    def test_markdown_sources_should_not_be_paginated(self) -> None:
        """Test markdown is processed as one batch."""
        # Act
        adapter = get_extraction_adapter(SourceType.MARKDOWN)

        # Assert
        assert adapter.paginated is False
