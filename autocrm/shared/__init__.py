"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded contexts
(knowledge, assistant and support).

Architecture Pattern: Modular Monolith
- Each module (knowledge, assistant, support) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add business logic from the bounded contexts to the shared kernel.
"""
