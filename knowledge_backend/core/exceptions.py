"""
Errors raised by the ingestion pipeline and the retrieval engine.

Every error carries a ``details`` dict of identifiers (document, batch,
chunk, agent) so log lines and API responses can point at the exact unit
of work. ``core.error_categories`` maps these types to the category stored
on failed ledger rows.

Dependencies: None (pure domain layer)
System role: Shared error vocabulary across layers
"""

from typing import Any


def _with_context(details: dict[str, Any] | None, **identifiers: Any) -> dict[str, Any]:
    merged = dict(details or {})
    merged.update({key: value for key, value in identifiers.items() if value is not None})
    return merged


class KnowledgeBaseException(Exception):
    """
    Root of the knowledge backend's errors.

    Args:
        message: What went wrong, in words an operator can act on
        details: Identifiers and values describing where it went wrong
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.details:
            return self.message
        return f"{self.message} | Details: {self.details}"


class ValidationError(KnowledgeBaseException):
    """An ingest or search request was malformed; ``field`` names the culprit."""

    def __init__(self, message: str, field: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, _with_context(details, field=field))


class DocumentNotFoundError(KnowledgeBaseException):
    def __init__(self, document_id: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Document not found: {document_id}", _with_context(details, document_id=document_id))


class DocumentProcessingError(KnowledgeBaseException):
    """Something failed while turning a document into searchable chunks."""

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, _with_context(details, document_id=document_id))


class ExtractionError(DocumentProcessingError):
    """
    The parser could not read a page range.

    Counts against the batch's attempt budget unless ``retryable`` is False,
    which marks output the parser will never get right (malformed JSON,
    unknown element kinds) and fails the batch at once.
    """

    def __init__(
        self,
        message: str,
        document_id: str | None = None,
        batch_index: int | None = None,
        retryable: bool = True,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.retryable = retryable
        super().__init__(message, document_id, _with_context(details, batch_index=batch_index))


class EmbeddingError(DocumentProcessingError):
    """The embedding API failed or timed out."""


class EmbeddingDimensionError(EmbeddingError):
    """A returned vector does not fit the chunks.embedding column. Never retried."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}",
            details={"expected": expected, "actual": actual},
        )


class EnrichmentError(DocumentProcessingError):
    """The vision model could not describe an image or table."""

    def __init__(self, message: str, item_id: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, details=_with_context(details, item_id=item_id))


class SearchBackendError(KnowledgeBaseException):
    """
    One search leg failed.

    ``operation`` is vector_search, keyword_search or fetch_chunks. A single
    failed leg degrades the search; only both legs failing reaches the caller.
    """

    def __init__(self, message: str, operation: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, _with_context(details, operation=operation))


class RetrievalError(KnowledgeBaseException):
    """A search request could not be answered at all."""

    def __init__(self, message: str, agent_id: str | None = None, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, _with_context(details, agent_id=agent_id))


class QueryExpansionError(KnowledgeBaseException):
    """The query expander returned nothing usable."""
