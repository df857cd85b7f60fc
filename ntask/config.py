"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "N-TASK"
    log_level: str = "INFO"

    # Public URL used in approval links and form redirects
    base_url: str = "http://localhost:3000"

    # Database (unset -> in-memory repositories)
    database_url: str | None = None

    # Task board snapshot file (unset -> memory only)
    board_store_path: str | None = None

    # Outbound webhooks, one URL per event type
    webhook_task_completed_url: str | None = None
    webhook_request_created_url: str | None = None
    webhook_request_approved_url: str | None = None
    webhook_request_rejected_url: str | None = None
    webhook_document_indexed_url: str | None = None

    # Timeout for every outbound call (seconds)
    outbound_timeout_sec: float = 10.0

    # SMTP
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_secure: bool = False
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""

    # Document parser
    upstage_api_key: str = ""
    upstage_api_url: str = "https://api.upstage.ai/v1/document-ai/document-parse"

    # Document search
    search_limit: int = 10


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
