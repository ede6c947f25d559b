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
    app_name: str = Field(default="supporthub-pipeline", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/supporthub",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Pipeline ==========
    pipeline_config_path: Path = Field(
        default=Path("pipeline_config.yaml"),
        description="Path to pipeline YAML file (sender ignore list)"
    )
    max_conflict_retries: int = Field(
        default=3,
        description="Attempts for a versioned ticket write before giving up",
        ge=1,
        le=10
    )

    # ========== Ingestion ==========
    ingestion_enabled: bool = Field(default=True, description="Schedule the mailbox poller")
    ingestion_interval_seconds: int = Field(
        default=60,
        description="Seconds between ingestion runs",
        ge=5
    )
    ingestion_max_concurrency: int = Field(
        default=4,
        description="Tenants polled in parallel",
        ge=1,
        le=64
    )
    ingestion_batch_size: int = Field(
        default=50,
        description="Max messages fetched per mailbox per poll",
        ge=1,
        le=500
    )
    attachment_storage_path: Path = Field(
        default=Path("data/attachments"),
        description="Root directory for inbound attachments"
    )
    attachment_max_size_bytes: int = Field(
        default=25 * 1024 * 1024,
        description="Inbound attachments larger than this are not stored",
        ge=1
    )
    attachment_allowed_extensions: List[str] = Field(
        default=[
            ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".png", ".jpg", ".jpeg",
            ".gif", ".txt", ".csv", ".zip", ".msg", ".eml",
        ],
        description="Inbound attachments with any other extension are not stored"
    )

    # ========== Routing ==========
    routing_regex_timeout_ms: int = Field(
        default=100,
        description="Wall-clock budget for a single regex rule match",
        ge=1,
        le=5000
    )
    routing_regex_max_pattern_length: int = Field(
        default=512,
        description="Longest regex pattern a rule may carry",
        ge=1
    )

    # ========== SLA ==========
    sla_monitor_enabled: bool = Field(default=True, description="Schedule the SLA monitor")
    sla_monitor_interval_seconds: int = Field(
        default=300,
        description="Seconds between SLA monitor runs",
        ge=10
    )
    sla_warning_percent: float = Field(
        default=50.0,
        description="Percent remaining at or below which a clock is 'warning'",
        gt=0,
        le=100
    )
    sla_critical_percent: float = Field(
        default=25.0,
        description="Percent remaining at or below which a clock is 'critical'",
        gt=0,
        le=100
    )

    # ========== Microsoft Graph (mail provider) ==========
    graph_tenant_id: Optional[str] = Field(default=None, description="Azure AD tenant ID")
    graph_client_id: Optional[str] = Field(default=None, description="App registration client ID")
    graph_client_secret: Optional[str] = Field(default=None, description="App registration secret")
    graph_base_url: str = Field(
        default="https://graph.microsoft.com/v1.0",
        description="Graph API base URL"
    )
    graph_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for Graph API calls",
        ge=0.1,
        le=120
    )

    # ========== Slack Integration ==========
    slack_webhook_url: Optional[str] = Field(
        default=None,
        description="Slack webhook URL for notifications"
    )
    slack_channel: str = Field(
        default="#support-sla",
        description="Slack channel for SLA notifications"
    )
    slack_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for Slack API calls",
        ge=0.1,
        le=30
    )
    ticket_url_template: str = Field(
        default="https://support.example.com/tickets/{ticket_id}",
        description="Link format used in notifications"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
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

    @field_validator("attachment_allowed_extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        """Lower-case every extension and give it a leading dot."""
        cleaned = (e.strip().lower() for e in v)
        return [e if e.startswith(".") else f".{e}" for e in cleaned if e]

    @field_validator("sla_critical_percent")
    @classmethod
    def validate_critical_below_warning(cls, v: float, info) -> float:
        """Critical tier must sit inside the warning tier."""
        warning = info.data.get("sla_warning_percent")
        if warning is not None and v > warning:
            raise ValueError("sla_critical_percent cannot exceed sla_warning_percent")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

THREADING_HEADER = "X-SupportHub-TicketId"
SUBJECT_TOKEN_PREFIX = "SH-"
SYSTEM_ACTOR = "system"


class TicketStatus(str, Enum):
    """Ticket lifecycle statuses."""
    NEW = "new"
    OPEN = "open"
    PENDING = "pending"            # waiting on the customer
    ON_HOLD = "on_hold"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Priority(str, Enum):
    """Ticket priority levels."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TicketSource(str, Enum):
    """Channel a ticket arrived through."""
    WEB_FORM = "web_form"
    EMAIL = "email"
    API = "api"


class MessageDirection(str, Enum):
    """Direction of a conversational entry."""
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class ProcessingOutcome(str, Enum):
    """Result recorded for each inbound message."""
    CREATED = "created"
    APPENDED = "appended"
    SKIPPED = "skipped"
    FAILED = "failed"


class RuleMatchType(str, Enum):
    """Ticket attribute a routing rule inspects."""
    SENDER_DOMAIN = "sender_domain"
    SUBJECT_KEYWORD = "subject_keyword"
    BODY_KEYWORD = "body_keyword"
    ISSUE_TYPE = "issue_type"
    SYSTEM = "system"
    TAG = "tag"
    REQUESTER_EMAIL = "requester_email"


class RuleMatchOperator(str, Enum):
    """Comparison applied by a routing rule."""
    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    REGEX = "regex"
    IN_LIST = "in_list"        # comma-separated values


class BreachKind(str, Enum):
    """Types of SLA clocks."""
    FIRST_RESPONSE = "first_response"
    RESOLUTION = "resolution"


class UrgencyTier(str, Enum):
    """SLA urgency derived from percent of time remaining."""
    ON_TRACK = "on_track"
    WARNING = "warning"
    CRITICAL = "critical"
    BREACHED = "breached"
    MET = "met"
    PAUSED = "paused"


# ========== Lists for validation ==========

OPEN_STATUSES = [
    TicketStatus.NEW, TicketStatus.OPEN,
    TicketStatus.PENDING, TicketStatus.ON_HOLD
]
TERMINAL_STATUSES = [TicketStatus.RESOLVED, TicketStatus.CLOSED]
VALID_PRIORITIES = [
    Priority.CRITICAL, Priority.HIGH,
    Priority.MEDIUM, Priority.LOW
]
ALERTING_TIERS = [UrgencyTier.WARNING, UrgencyTier.CRITICAL]
