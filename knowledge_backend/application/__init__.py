"""Application layer: service orchestrators used by the API and the workers."""
