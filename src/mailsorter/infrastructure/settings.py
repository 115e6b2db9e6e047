"""Application settings using Pydantic Settings for configuration management."""

from datetime import date
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, computed_field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Mail credentials and the API key of the selected LLM provider are
    required; a missing value fails settings construction at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Mailsorter"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # IMAP mailbox
    imap_host: str = "imap.gmail.com"
    imap_port: int = 993
    imap_username: str
    imap_password: SecretStr
    imap_mailbox: str = "INBOX"
    imap_since: date = date(2024, 12, 29)
    imap_timeout_seconds: float = Field(default=30.0, gt=0)

    # Ingestion
    ingest_max_workers: int = Field(default=4, ge=1)
    poll_interval_minutes: int = Field(default=5, ge=1)
    classifier_max_body_chars: int = Field(default=4000, ge=0)

    # SQLite record store
    sqlite_db_path: str = "data/mailsorter.db"

    # LLM Configuration
    llm_provider: Literal["groq", "openai", "anthropic", "local"] = "groq"
    llm_model_name: str | None = None
    llm_timeout_seconds: float = Field(default=30.0, gt=0)
    groq_api_key: SecretStr | None = None
    openai_api_key: SecretStr | None = None
    anthropic_api_key: SecretStr | None = None

    # Local vLLM (for local inference)
    vllm_base_url: str = "http://localhost:8000/v1"
    vllm_model_name: str = "gpt-oss-20b"

    @model_validator(mode="after")
    def _require_llm_key(self) -> "Settings":
        required = {
            "groq": self.groq_api_key,
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
        }
        if self.llm_provider in required and required[self.llm_provider] is None:
            raise ValueError(f"{self.llm_provider.upper()}_API_KEY is required when llm_provider={self.llm_provider}")
        return self

    @computed_field
    @property
    def imap_address(self) -> str:
        """Host:port of the IMAP server."""
        return f"{self.imap_host}:{self.imap_port}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
