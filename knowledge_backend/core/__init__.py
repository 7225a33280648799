"""Core business logic: ingestion orchestration and hybrid retrieval."""
