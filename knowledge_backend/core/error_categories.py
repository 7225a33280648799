"""
Error categorisation.

Maps exceptions to a small fixed set of categories stored next to recorded
errors on batches and documents, so failures can be grouped without parsing
free-form messages.

Dependencies: None
System role: Error classification for the Job Ledger
"""

import asyncio
import enum

from knowledge_backend.core.exceptions import (
    EmbeddingDimensionError,
    ExtractionError,
    ValidationError,
)


class ErrorCategory(str, enum.Enum):
    """Failure categories, checked in declaration order of CATEGORY_RULES."""

    TIMEOUT = "timeout"
    API_ERROR = "api_error"
    LLM_ERROR = "llm_error"
    DATABASE_ERROR = "database_error"
    VALIDATION_ERROR = "validation_error"
    NETWORK_ERROR = "network_error"
    STORAGE_ERROR = "storage_error"
    AUTH_ERROR = "auth_error"
    UNKNOWN_ERROR = "unknown_error"


CATEGORY_RULES: tuple[tuple[ErrorCategory, tuple[str, ...]], ...] = (
    (ErrorCategory.TIMEOUT, ("timeout", "deadline", "timed out")),
    (ErrorCategory.API_ERROR, ("api", "rate limit", "429")),
    (ErrorCategory.LLM_ERROR, ("model", "completion", "gemini", "generative")),
    (ErrorCategory.DATABASE_ERROR, ("database", "query", "postgres", "sqlalchemy")),
    (ErrorCategory.VALIDATION_ERROR, ("validation", "invalid", "required", "malformed")),
    (ErrorCategory.NETWORK_ERROR, ("network", "fetch", "connection", "econnrefused")),
    (ErrorCategory.STORAGE_ERROR, ("storage", "bucket", "upload", "file not found")),
    (ErrorCategory.AUTH_ERROR, ("auth", "unauthorized", "forbidden", "permission")),
)


def categorize_error(error: BaseException) -> ErrorCategory:
    """
    Classify an exception.

    Typed checks run first (timeouts, structural validation failures), then
    the ordered message-substring rules.

    Args:
        error: Exception raised by a pipeline unit

    Returns:
        ErrorCategory: First matching category, UNKNOWN_ERROR otherwise
    """
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorCategory.TIMEOUT
    if isinstance(error, (ValidationError, EmbeddingDimensionError)):
        return ErrorCategory.VALIDATION_ERROR
    if isinstance(error, ExtractionError) and not error.retryable:
        return ErrorCategory.VALIDATION_ERROR

    message = str(error).lower()
    for category, needles in CATEGORY_RULES:
        if any(needle in message for needle in needles):
            return category
    return ErrorCategory.UNKNOWN_ERROR
