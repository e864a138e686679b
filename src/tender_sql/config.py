"""
Configuration
=============

Environment-driven settings (prefix ``TENDER_SQL_``, optional ``.env``).
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    database_url: str = "sqlite+aiosqlite:///./tender.db"
    db_schema: Optional[str] = None
    pool_size: int = Field(default=10, ge=1)

    # Language model
    llm_provider: Literal["openai", "mock"] = "openai"
    llm_api_key: Optional[str] = None
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o-mini"
    llm_temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    llm_max_tokens: int = Field(default=1000, ge=1)
    llm_timeout_seconds: float = Field(default=30.0, gt=0)

    # Schema grounding
    schema_cache_ttl_seconds: float = Field(default=300.0, ge=0)
    sample_rows: int = Field(default=5, ge=0, le=5)
    prompt_sample_rows: int = Field(default=2, ge=0, le=2)
    history_window: int = Field(default=5, ge=0)
    degrade_on_introspection_error: bool = True

    # Audit and logging
    audit_log_path: Optional[str] = None
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    # HTTP service
    tracing_enabled: bool = True
    otlp_endpoint: Optional[str] = None
    cors_origins: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_prefix="TENDER_SQL_", env_file=".env", extra="ignore"
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
