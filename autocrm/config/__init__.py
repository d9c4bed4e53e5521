"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ========== Constants ==========

class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"
    RE_OPENED = "Re-Opened"


class TicketPriority(str, Enum):
    """Ticket priority levels."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ResolutionStatus(str, Enum):
    """AI self-assessment of where a conversation stands."""
    CONTINUE = "continue"
    POTENTIAL_RESOLUTION = "potential_resolution"
    ESCALATE = "escalate"


class ArticleStatus(str, Enum):
    """Knowledge article publication states."""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="autocrm", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/autocrm",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== OpenAI ==========
    openai_api_key: Optional[str] = Field(
        default=None,
        description="OpenAI API key for completions and embeddings"
    )
    openai_base_url: Optional[str] = Field(
        default=None,
        description="Override for OpenAI-compatible endpoints"
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Chat model for responses and classification"
    )
    embedding_model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model for the knowledge base"
    )
    embedding_dimension: int = Field(
        default=1536,
        description="Embedding vector dimension",
        ge=8
    )
    llm_temperature: float = Field(
        default=0.3,
        description="Default temperature for LLM",
        ge=0.0,
        le=1.0
    )
    llm_max_tokens: int = Field(
        default=500,
        description="Default max tokens for LLM generation",
        ge=1,
        le=8000
    )
    llm_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for a single provider request",
        gt=0
    )
    llm_max_retries: int = Field(
        default=2,
        description="Retries performed by the provider SDK",
        ge=0,
        le=10
    )
    completion_transport: Literal["direct", "proxy", "mock"] = Field(
        default="direct",
        description="How completions reach the provider"
    )
    completion_proxy_url: Optional[str] = Field(
        default=None,
        description="Internal proxy endpoint speaking the chat completion wire format"
    )

    # ========== Vector Store ==========
    vector_backend: Literal["milvus", "memory"] = Field(
        default="milvus",
        description="Vector index implementation"
    )
    milvus_uri: str = Field(
        default="",
        description="Milvus / Zilliz Cloud endpoint URI"
    )
    milvus_token: str = Field(
        default="",
        description="Milvus / Zilliz Cloud API token"
    )
    milvus_collection_name: str = Field(
        default="autocrm_knowledge",
        description="Milvus collection holding article vectors"
    )

    # ========== RAG Policy ==========
    similarity_threshold: float = Field(
        default=0.7,
        description="Minimum similarity for an article to count as relevant in chat",
        ge=0.0,
        le=1.0
    )
    retrieval_limit: int = Field(
        default=3,
        description="Number of articles retrieved per ticket interaction",
        ge=1,
        le=20
    )
    resolution_confidence_threshold: float = Field(
        default=0.8,
        description="AI confidence that must be exceeded before the ticket status moves",
        ge=0.0,
        le=1.0
    )
    escalation_status: TicketStatus = Field(
        default=TicketStatus.IN_PROGRESS,
        description="Status applied when the AI escalates with high confidence"
    )
    sync_batch_size: int = Field(
        default=5,
        description="Articles embedded and upserted per batch during sync",
        ge=1
    )
    sync_batch_delay_seconds: float = Field(
        default=1.0,
        description="Pause between sync batches for upstream rate limits",
        ge=0.0
    )

    # ========== Email (Resend) ==========
    resend_api_key: Optional[str] = Field(
        default=None,
        description="Resend API key for ticket notifications"
    )
    email_from: str = Field(
        default="AutoCRM <support@resend.dev>",
        description="Sender address for notifications"
    )
    email_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for email API calls",
        ge=0.1,
        le=30
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "test", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Lists for validation ==========

VALID_STATUSES = [s.value for s in TicketStatus]
VALID_PRIORITIES = [p.value for p in TicketPriority]
VALID_RESOLUTION_STATUSES = [r.value for r in ResolutionStatus]
VALID_ARTICLE_STATUSES = [a.value for a in ArticleStatus]
