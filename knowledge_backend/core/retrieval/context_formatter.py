"""
Context formatting for the answering model.

Dependencies: None
System role: Renders search results into a system-prompt context block
"""

from typing import Sequence

from knowledge_backend.core.retrieval.models import SearchResult

CHUNK_SEPARATOR = "\n\n---\n\n"


def format_chunks_for_context(results: Sequence[SearchResult]) -> str:
    """
    Render results as numbered blocks with a metadata header.

    Args:
        results: Ranked search results

    Returns:
        str: "[Chunk n] Document: ... | Type: ... | Similarity: x%" blocks, or "" when empty
    """
    parts = []
    for index, result in enumerate(results, start=1):
        metadata = " | ".join(
            [
                f"Document: {result.document_name}",
                f"Type: {result.chunk_type}",
                f"Similarity: {result.base_score * 100:.1f}%",
            ]
        )
        parts.append(f"[Chunk {index}] {metadata}\n{result.content}")
    return CHUNK_SEPARATOR.join(parts)
