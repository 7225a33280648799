"""
Language model boundary: Google Generative AI clients.

Exports:
  - EmbeddingClient, FixedDimensionEmbeddings: Embeddings with a fixed dimension
  - VisionAnnotator: Image and table descriptions
  - ElementSummarizer: Summaries of large tables and code blocks
  - LLMQueryExpander: Search query expansion
  - DocumentContextAnalyzer, DocumentContext: Document domain detection

Dependencies: langchain_google_genai, langchain_core, tenacity
System role: All calls to hosted language models
"""

from knowledge_backend.boundary.llm.context_analyzer import (
    DocumentContext,
    DocumentContextAnalyzer,
    get_context_analyzer,
)
from knowledge_backend.boundary.llm.embedding_client import EmbeddingClient, get_embedding_client
from knowledge_backend.boundary.llm.embeddings_wrapper import FixedDimensionEmbeddings
from knowledge_backend.boundary.llm.query_expander import LLMQueryExpander, get_query_expander
from knowledge_backend.boundary.llm.summarizer import ElementSummarizer, get_summarizer
from knowledge_backend.boundary.llm.vision_annotator import VisionAnnotator, get_vision_annotator

__all__ = [
    "DocumentContext",
    "DocumentContextAnalyzer",
    "get_context_analyzer",
    "EmbeddingClient",
    "get_embedding_client",
    "FixedDimensionEmbeddings",
    "LLMQueryExpander",
    "get_query_expander",
    "ElementSummarizer",
    "get_summarizer",
    "VisionAnnotator",
    "get_vision_annotator",
]
