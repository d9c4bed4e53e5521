"""
AutoCRM
=======

AI-assisted customer support ticketing backend.

Bounded contexts:
- knowledge: knowledge base articles, vector sync and similarity search
- assistant: LLM-backed operations (responses, priority, chat, article help)
- support: tickets, messages and the resolution state machine
"""

__version__ = "1.0.0"
