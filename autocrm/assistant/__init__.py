"""
AI Assistant Module
===================

Bounded Context for model-driven support assistance.

Responsibilities:
- Generate replies to new tickets and follow-up messages (RAG)
- Assess whether a conversation is resolved, ongoing or needs escalation
- Assign a priority to new tickets
- Answer questions from the knowledge base (chat)
- Surface recurring issues across tickets
"""
