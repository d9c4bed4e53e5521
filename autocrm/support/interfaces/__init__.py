"""
Support Interfaces Layer
=========================

Interface adapters (controllers) for the support ticket module.

Contains:
- Controllers: FastAPI route handlers
"""

from autocrm.support.interfaces.controllers import support_router

__all__ = ["support_router"]
