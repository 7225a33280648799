"""
Embedding client.

Async facade over a LangChain Embeddings implementation: bounded by a
timeout, retried with tenacity, and checked against the configured vector
dimension before anything reaches the chunk store.

Dependencies: langchain_core, tenacity, knowledge_backend.boundary.llm.embeddings_wrapper
System role: Embedding API boundary for the Embedding Worker and vector search
"""

import asyncio
import logging
from functools import lru_cache

from langchain_core.embeddings import Embeddings
from tenacity import (
    AsyncRetrying,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from knowledge_backend.boundary.llm.embeddings_wrapper import FixedDimensionEmbeddings
from knowledge_backend.configs import get_settings
from knowledge_backend.core.exceptions import EmbeddingDimensionError, EmbeddingError

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """Embed texts and queries with a fixed output dimension."""

    def __init__(
        self,
        embeddings: Embeddings,
        dimension: int,
        timeout_seconds: float = 30.0,
        max_attempts: int = 3,
    ) -> None:
        """
        Initialize the client.

        Args:
            embeddings: LangChain embeddings implementation
            dimension: Expected vector length
            timeout_seconds: Timeout per API call
            max_attempts: Attempts per call before giving up
        """
        self._embeddings = embeddings
        self.dimension = dimension
        self._timeout = timeout_seconds
        self._max_attempts = max_attempts

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        """
        Embed a batch of texts.

        Args:
            texts: Embedding inputs

        Returns:
            list[list[float]]: One vector per input, in order

        Raises:
            EmbeddingDimensionError: When a vector has the wrong length (not retried)
            EmbeddingError: When the API keeps failing
            asyncio.TimeoutError: When the last attempt timed out
        """
        if not texts:
            return []
        vectors = await self._call(self._embeddings.embed_documents, texts)
        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Embedding API returned {len(vectors)} vectors for {len(texts)} inputs"
            )
        for vector in vectors:
            self._check_dimension(vector)
        return [list(vector) for vector in vectors]

    async def embed_query(self, text: str) -> list[float]:
        """
        Embed a search query.

        Args:
            text: Query text

        Returns:
            list[float]: Query vector
        """
        vector = await self._call(self._embeddings.embed_query, text)
        self._check_dimension(vector)
        return list(vector)

    def _check_dimension(self, vector: list[float]) -> None:
        if len(vector) != self.dimension:
            raise EmbeddingDimensionError(expected=self.dimension, actual=len(vector))

    async def _call(self, func, payload):
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential_jitter(initial=1, max=10, jitter=1),
            retry=retry_if_not_exception_type(EmbeddingDimensionError),
            before_sleep=lambda retry_state: logger.warning(
                f"{__name__}:_call - Retry {retry_state.attempt_number}/{self._max_attempts} "
                f"after {type(retry_state.outcome.exception()).__name__}"
            ),
            reraise=True,
        ):
            with attempt:
                try:
                    return await asyncio.wait_for(
                        asyncio.to_thread(func, payload),
                        timeout=self._timeout,
                    )
                except (asyncio.TimeoutError, EmbeddingError):
                    raise
                except Exception as e:
                    raise EmbeddingError(f"Embedding API call failed: {e}") from e


@lru_cache
def get_embedding_client() -> EmbeddingClient:
    """
    Build the process-wide embedding client from settings.

    Returns:
        EmbeddingClient: Client backed by FixedDimensionEmbeddings
    """
    settings = get_settings()
    kwargs = {}
    if settings.llm.google_api_key:
        kwargs["google_api_key"] = settings.llm.google_api_key
    embeddings = FixedDimensionEmbeddings(
        model=settings.llm.embedding_model,
        output_dimensionality=settings.llm.embedding_dimension,
        **kwargs,
    )
    return EmbeddingClient(
        embeddings=embeddings,
        dimension=settings.llm.embedding_dimension,
        timeout_seconds=settings.ingestion.external_call_timeout_seconds,
    )
