"""
Root logging setup shared by the API process and the Celery workers.

Every line carries the active correlation ID so a document's ingestion can
be followed from the request that registered it to the batches it spawned.

Dependencies: logging (stdlib), knowledge_backend.observability.correlation
System role: Process-wide log handler configuration
"""

import logging
import sys

from knowledge_backend.observability.correlation import CorrelationIdFilter

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(correlation_id)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Client libraries that log every HTTP round trip to the embedding and chat APIs
QUIETED_LOGGERS = ("httpx", "httpcore", "urllib3", "google_genai", "celery.redirected")


def configure_logging(level: str = "INFO") -> None:
    """
    Replace the root handlers with a single stdout handler.

    Safe to call more than once; uvicorn reloads and Celery's
    setup_logging signal both end up here.

    Args:
        level: Level name for the root logger, unknown names fall back to INFO
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))

    for name in QUIETED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
