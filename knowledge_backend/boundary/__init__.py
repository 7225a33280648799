"""
Boundary layer for external system integrations.

Handles all interactions with external systems (database, document parsers,
language models, search indexes). Provides adapters and clients for
infrastructure dependencies.
"""
