"""
Gemini embeddings pinned to the chunk store's vector width.

The chunks.embedding column is a fixed-size pgvector column, so every call
must request the same output dimensionality. The Google client only honours
that setting per call, which is what this subclass supplies. It also tags
calls with the retrieval task types Gemini uses to place chunks and queries
in a shared space.

Dependencies: langchain_google_genai
System role: Concrete embeddings behind EmbeddingClient
"""

import logging

from langchain_google_genai import GoogleGenerativeAIEmbeddings

logger = logging.getLogger(__name__)

DOCUMENT_TASK_TYPE = "RETRIEVAL_DOCUMENT"
QUERY_TASK_TYPE = "RETRIEVAL_QUERY"


class FixedDimensionEmbeddings(GoogleGenerativeAIEmbeddings):
    """Google embeddings that always return vectors of one configured length."""

    _output_dimensionality: int = 1024

    def __init__(self, model: str, output_dimensionality: int, **kwargs) -> None:
        super().__init__(model=model, **kwargs)
        self._output_dimensionality = output_dimensionality
        logger.info(f"{__name__}:__init__ - {model} at {output_dimensionality} dimensions")

    def embed_documents(self, texts: list[str], **kwargs) -> list[list[float]]:
        """
        Embed chunk texts for storage.

        Args:
            texts: Chunk embedding inputs
            **kwargs: Passed through; task_type and output_dimensionality
                default to the document task and the pinned width

        Returns:
            list[list[float]]: One vector per text
        """
        kwargs.setdefault("task_type", DOCUMENT_TASK_TYPE)
        kwargs.setdefault("output_dimensionality", self._output_dimensionality)
        return super().embed_documents(texts, **kwargs)

    def embed_query(self, text: str, **kwargs) -> list[float]:
        kwargs.setdefault("task_type", QUERY_TASK_TYPE)
        kwargs.setdefault("output_dimensionality", self._output_dimensionality)
        return super().embed_query(text, **kwargs)
