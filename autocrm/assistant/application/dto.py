"""
Assistant Application DTOs
===========================

Data Transfer Objects for the assistant API layer.

Request payloads of ``POST /ai`` accept the camelCase field names used by
the web client; snake_case names are accepted as well.
"""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from autocrm.assistant.domain import ChatAnswer, TicketDigest
from autocrm.knowledge.domain import KnowledgeArticle


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ========== /ai operation payloads ==========

class ArticleContext(_CamelModel):
    """Article text supplied inline by the caller."""
    title: str = ""
    content: str = ""

    def to_domain(self) -> KnowledgeArticle:
        return KnowledgeArticle(id="", title=self.title, content=self.content)


class ConversationTurnPayload(_CamelModel):
    role: Literal["user", "assistant"]
    content: str


class TicketDigestPayload(_CamelModel):
    title: str = ""
    description: str = ""
    messages: List[str] = Field(default_factory=list)

    def to_domain(self) -> TicketDigest:
        return TicketDigest(
            title=self.title,
            description=self.description,
            messages=list(self.messages)
        )


class AnalyzePriorityPayload(_CamelModel):
    title: str = Field(..., min_length=1)
    description: str = ""


class InitialResponsePayload(_CamelModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    similar_articles: List[ArticleContext] = Field(default_factory=list)


class FollowUpResponsePayload(_CamelModel):
    ticket_id: str
    title: str
    user_message: str = Field(..., min_length=1)
    conversation_history: List[ConversationTurnPayload] = Field(default_factory=list)
    ticket_status: str = "Open"
    context: str = ""


class GenerateTagsPayload(_CamelModel):
    title: str = ""
    content: str = Field(..., min_length=1)


class ArticleQualityPayload(_CamelModel):
    title: str = ""
    content: str = Field(..., min_length=1)


class GenerateEmbeddingPayload(_CamelModel):
    text: str = Field(..., min_length=1)


class ArticleSuggestionsPayload(_CamelModel):
    ticket_title: str
    ticket_content: str
    similar_articles: List[ArticleContext] = Field(default_factory=list)


class TicketPatternsPayload(_CamelModel):
    tickets: List[TicketDigestPayload] = Field(default_factory=list)


# ========== /chat ==========

class ChatRequest(BaseModel):
    """Request model for knowledge base chat."""
    message: str = Field(default="", description="Customer question")


class UsedArticle(BaseModel):
    title: str
    similarity: float


class ChatResponse(BaseModel):
    """Response model for knowledge base chat."""
    response: str
    used_articles: List[UsedArticle] = Field(serialization_alias="usedArticles")
    needs_live_agent: bool = Field(serialization_alias="needsLiveAgent")

    @classmethod
    def from_domain(cls, answer: ChatAnswer) -> "ChatResponse":
        return cls(
            response=answer.response,
            used_articles=[
                UsedArticle(title=s.article.title, similarity=round(s.similarity, 4))
                for s in answer.used_articles
            ],
            needs_live_agent=answer.needs_live_agent
        )
