"""
Knowledge Base Module
=====================

Bounded Context for knowledge articles and their vector index.

Responsibilities:
- Store and edit knowledge base articles
- Keep one embedding per article in the vector index
- Retrieve the articles most similar to a piece of text
- AI assistance for article authors (tags, quality review, suggestions)
"""
