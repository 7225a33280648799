"""
Helpers for logging failures and recording them on ledger rows.

Dependencies: logging (stdlib)
System role: Error rendering shared by the pipeline stages and the CRUD layer
"""

import logging
from typing import Any

# Upper bound for last_error / error_message columns
MAX_RECORDED_ERROR_LENGTH = 2000
MAX_CONTEXT_VALUE_LENGTH = 500


def _describe(value: Any) -> str:
    if isinstance(value, (list, tuple, set, dict)):
        unit = "keys" if isinstance(value, dict) else "items"
        rendered = f"{type(value).__name__}({len(value)} {unit})"
    else:
        rendered = str(value)
    if len(rendered) > MAX_CONTEXT_VALUE_LENGTH:
        return f"{rendered[:MAX_CONTEXT_VALUE_LENGTH]}... ({len(rendered)} chars)"
    return rendered


def truncate_error(error: BaseException | str) -> str:
    """
    Render an error for a ledger row.

    Args:
        error: Exception, or a message already prepared by the caller

    Returns:
        str: ``"<ExceptionType>: <message>"`` (or the message itself),
            at most MAX_RECORDED_ERROR_LENGTH characters
    """
    text = f"{type(error).__name__}: {error}" if isinstance(error, BaseException) else error
    return text[:MAX_RECORDED_ERROR_LENGTH]


def log_exception_with_context(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    **context,
) -> None:
    """
    Log an error with its traceback and identifying fields.

    Context values (document_id, batch_id, ...) are passed as ``extra`` after
    being stringified; collections are reduced to their size.

    Args:
        logger: Logger of the calling module
        message: Human-readable summary
        exc: The exception being reported
        **context: Identifiers of the unit of work that failed
    """
    extra = {key: _describe(value) for key, value in context.items()}
    extra["error_type"] = type(exc).__name__
    extra["error_msg"] = _describe(str(exc))
    logger.error(message, exc_info=exc, extra=extra)
