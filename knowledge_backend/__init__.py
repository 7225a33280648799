"""
Knowledge base backend.

Batch ingestion and embedding orchestration plus hybrid retrieval
for agent knowledge bases.
"""

__version__ = "0.1.0"
