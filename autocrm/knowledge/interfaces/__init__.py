"""
Knowledge Interfaces Layer
===========================

Interface adapters (controllers) for the knowledge base module.

Contains:
- Controllers: FastAPI route handlers
"""

from autocrm.knowledge.interfaces.controllers import knowledge_router

__all__ = ["knowledge_router"]
