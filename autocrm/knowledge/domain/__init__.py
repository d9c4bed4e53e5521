"""
Knowledge Domain Layer
======================

Domain layer for the knowledge base module.

Contains:
- Entities: KnowledgeArticle, ArticleSuggestion, SyncReport, ArticleQualityAnalysis
- Prompt builders for article assistance

This layer is framework-agnostic and contains pure business logic.
"""

from autocrm.knowledge.domain.entities import (
    KnowledgeArticle,
    ArticleSuggestion,
    SyncReport,
    ArticleQualityAnalysis,
    TagPromptBuilder,
    ArticleQualityPromptBuilder,
    ArticleSuggestionPromptBuilder,
    format_articles_for_prompt,
)

__all__ = [
    "KnowledgeArticle",
    "ArticleSuggestion",
    "SyncReport",
    "ArticleQualityAnalysis",
    "TagPromptBuilder",
    "ArticleQualityPromptBuilder",
    "ArticleSuggestionPromptBuilder",
    "format_articles_for_prompt",
]
