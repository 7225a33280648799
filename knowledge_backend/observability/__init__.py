"""
Observability module.

Root log configuration, error logging helpers and the correlation ID that
ties API requests to the ingestion work they schedule.
"""

from knowledge_backend.observability.correlation import get_correlation_id, set_correlation_id
from knowledge_backend.observability.logger import configure_logging

__all__ = [
    "configure_logging",
    "get_correlation_id",
    "set_correlation_id",
]
