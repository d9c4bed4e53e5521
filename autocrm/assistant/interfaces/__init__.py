"""
Assistant Interfaces Layer
===========================

Interface adapters (controllers) for the AI assistant module.

Contains:
- Controllers: FastAPI route handlers
"""

from autocrm.assistant.interfaces.controllers import assistant_router

__all__ = ["assistant_router"]
