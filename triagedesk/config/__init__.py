"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="triagedesk", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="sqlite+aiosqlite:///./tickets.db",
        description="SQLAlchemy async connection URL"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== LLM ==========
    llm_provider: str = Field(
        default="openai",
        description="Chat completion provider: openai, zai or mock"
    )
    openai_api_key: Optional[str] = Field(
        default=None,
        description="API key for the OpenAI-compatible endpoint"
    )
    openai_base_url: Optional[str] = Field(
        default=None,
        description="Base URL override for OpenAI-compatible gateways"
    )
    zai_api_key: Optional[str] = Field(
        default=None,
        description="Z.AI API key for GLM models"
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model used for triage conversations"
    )
    llm_temperature: float = Field(
        default=0.3,
        description="Default temperature for LLM",
        ge=0.0,
        le=1.0
    )
    llm_max_tokens: int = Field(
        default=1000,
        description="Default max tokens for LLM generation",
        ge=1,
        le=8000
    )

    # ========== Email (SMTP) ==========
    smtp_host: Optional[str] = Field(
        default=None,
        description="SMTP server host; notifications are only logged when unset"
    )
    smtp_port: int = Field(default=587, description="SMTP server port", ge=1, le=65535)
    smtp_user: Optional[str] = Field(default=None, description="SMTP login user")
    smtp_password: Optional[str] = Field(default=None, description="SMTP login password")
    smtp_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for SMTP connections",
        ge=0.1,
        le=120
    )
    sender_email: str = Field(
        default="support@example.com",
        description="From address for notifications"
    )
    sender_name: str = Field(default="Support System", description="From display name")

    # ========== Routing ==========
    routing_config_path: Path = Field(
        default=Path("routing_config.yaml"),
        description="Path to the category routing YAML file"
    )
    allow_messages_after_close: bool = Field(
        default=True,
        description="Accept chat turns on escalated or resolved tickets"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # ========== Chat client ==========
    api_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL the terminal chat client talks to"
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
        allowed = {"development", "staging", "production", "test"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        allowed = {"openai", "zai", "mock"}
        v = v.lower()
        if v not in allowed:
            raise ValueError(f"llm_provider must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    OPEN = "open"
    ESCALATED = "escalated"
    RESOLVED = "resolved"


class TicketPriority(str, Enum):
    """Ticket priority levels."""
    NORMAL = "normal"
    URGENT = "urgent"


class MessageRole(str, Enum):
    """Author of a transcript turn."""
    USER = "user"
    ASSISTANT = "assistant"


DEFAULT_CATEGORY = "Unclassified"

DEFAULT_CATEGORY_LABELS = ["Website", "Email", "Social", "Admin"]

MIN_RATING = 1
MAX_RATING = 5
