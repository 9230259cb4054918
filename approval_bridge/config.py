"""
Configuration management using Pydantic Settings.
Reads from environment variables.
"""

from pydantic import AliasChoices, ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    model_config = ConfigDict(env_file=".env", case_sensitive=False, populate_by_name=True)

    # Backend decision endpoint
    approval_endpoint: str = Field(
        default="http://127.0.0.1:7041/atc/public/handle_approval_message",
        validation_alias=AliasChoices("APPROVAL_ENDPOINT", "LEAVE_APPROVAL_ENDPOINT"),
    )
    http_timeout_seconds: float = Field(default=10.0, alias="HTTP_TIMEOUT_SECONDS")

    # Chat gateway
    gateway_url: str = Field(default="http://127.0.0.1:3000", alias="GATEWAY_URL")

    # Channels
    notification_chat_id: str = Field(
        default="120363368545737149@g.us", alias="NOTIFICATION_CHAT_ID"
    )
    audit_chat_id: str = Field(default="120363368545737149@g.us", alias="AUDIT_CHAT_ID")

    # Confirmation messages
    origin_language: str = Field(default="ms", alias="ORIGIN_LANGUAGE")
    audit_language: str = Field(default="zh", alias="AUDIT_LANGUAGE")
    daily_leave_capacity: int = Field(default=3, alias="DAILY_LEAVE_CAPACITY")

    # Context store bounds (0 disables expiry)
    context_ttl_seconds: int = Field(default=7 * 24 * 3600, alias="CONTEXT_TTL_SECONDS")
    max_contexts: int = Field(default=5000, alias="MAX_CONTEXTS")

    # Application Configuration
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Circuit Breaker Configuration
    circuit_breaker_failure_threshold: int = Field(
        default=5, alias="CIRCUIT_BREAKER_FAILURE_THRESHOLD"
    )
    circuit_breaker_timeout: int = Field(default=60, alias="CIRCUIT_BREAKER_TIMEOUT")


# Global settings instance
settings = Settings()
