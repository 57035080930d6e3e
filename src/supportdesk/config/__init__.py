"""
Configuration Module
====================

Application settings and domain enumerations.

Settings are loaded from environment variables (or a ``.env`` file) using
pydantic-settings. Enumerations are shared by every bounded context.
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
    app_name: str = Field(default="support-desk", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/support_desk",
        description="Async SQLAlchemy connection URL (asyncpg or aiosqlite)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)
    create_tables_on_startup: bool = Field(
        default=True,
        description="Create missing tables at startup (use migrations in production)"
    )

    # ========== Classifier / LLM ==========
    llm_provider: str = Field(
        default="keyword",
        description="Classifier backend: openai, zai or keyword"
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    zai_api_key: Optional[str] = Field(default=None, description="Z.AI API key for GLM models")
    llm_model: str = Field(default="gpt-4o-mini", description="Chat model used for triage")
    llm_temperature: float = Field(default=0.3, description="Sampling temperature", ge=0.0, le=1.0)
    llm_max_tokens: int = Field(default=500, description="Max tokens for a triage reply", ge=1, le=8000)
    classifier_timeout_seconds: float = Field(
        default=10.0,
        description="Upper bound on a single classifier call",
        gt=0
    )
    classifier_fallback_enabled: bool = Field(
        default=True,
        description="Return a fallback verdict instead of failing when the classifier is unavailable"
    )
    classifier_fallback_message: str = Field(
        default=(
            "Thanks for reaching out. Our assistant is unavailable right now, "
            "so a member of the support team will pick up your request."
        ),
        description="Reply used for the fallback verdict"
    )
    escalation_confidence_threshold: float = Field(
        default=0.6,
        description="Verdicts below this confidence are handed to a human",
        ge=0.0,
        le=1.0
    )
    triage_rules_path: Path = Field(
        default=Path("triage_rules.yaml"),
        description="Optional YAML file with keyword classifier rules"
    )

    # ========== Complaints ==========
    complaints_page_size: int = Field(
        default=50,
        description="Maximum complaints returned to a vendor",
        ge=1,
        le=500
    )

    # ========== Grafana OTLP Metrics ==========
    grafana_host: Optional[str] = Field(
        default=None,
        description="Grafana OTLP gateway URL (e.g., https://otlp-gateway-prod-eu-west-2.grafana.net)"
    )
    grafana_api_key: Optional[str] = Field(default=None, description="Grafana API key for OTLP authentication")
    grafana_instance_id: Optional[str] = Field(default=None, description="Grafana instance ID for OTLP authentication")
    grafana_timeout_seconds: float = Field(
        default=2.0,
        description="Upper bound on one metrics push",
        gt=0
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
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
        allowed = {"development", "staging", "production", "test"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        """Ensure the classifier backend is known."""
        allowed = {"openai", "zai", "keyword"}
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


# ========== Enumerations ==========

class TicketCategory(str, Enum):
    """What a ticket is about."""
    ORDER_ISSUE = "order_issue"
    PAYMENT = "payment"
    FOOD_QUALITY = "food_quality"
    DELIVERY = "delivery"
    ACCOUNT = "account"
    OTHER = "other"


class Priority(str, Enum):
    """Ticket priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Sort weight, higher is more pressing."""
        return PRIORITY_RANK[self]


class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    ESCALATED = "escalated"
    ASSIGNED = "assigned"
    RESOLVED = "resolved"
    CLOSED = "closed"


class UserRole(str, Enum):
    """Platform user types. Students are the marketplace customers."""
    STUDENT = "student"
    SUPPORT_AGENT = "support_agent"
    SENIOR_SUPPORT = "senior_support"
    ADMIN = "admin"
    VENDOR = "vendor"


class SenderType(str, Enum):
    """Who a ledger message is attributed to."""
    CUSTOMER = "customer"
    SUPPORT_AGENT = "support_agent"
    SENIOR_SUPPORT = "senior_support"
    AI_BOT = "ai_bot"


class EscalationLevel(str, Enum):
    """Tier a ticket was escalated to."""
    AGENT = "agent"
    SENIOR = "senior"
    ADMIN = "admin"


# ========== Derived constants ==========

PRIORITY_RANK = {
    Priority.URGENT: 4,
    Priority.HIGH: 3,
    Priority.MEDIUM: 2,
    Priority.LOW: 1,
}

SUPPORT_ROLES = frozenset({UserRole.SUPPORT_AGENT, UserRole.SENIOR_SUPPORT, UserRole.ADMIN})
CLOSED_STATUSES = frozenset({TicketStatus.RESOLVED, TicketStatus.CLOSED})
ACTIVE_LOAD_STATUSES = (TicketStatus.ASSIGNED, TicketStatus.IN_PROGRESS)
