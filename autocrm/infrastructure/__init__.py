"""
Infrastructure Layer
====================

Adapters for external systems: database, LLM providers, vector index, email.
"""
