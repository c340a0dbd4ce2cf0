"""
Application configuration loaded from environment variables.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the Intelixir API."""

    project_name: str = Field(default="Intelixir API", description="Human readable name.")
    environment: str = Field(default="development", description="development | production")
    log_level: str = Field(default="INFO")

    # MongoDB
    database_url: str = Field(default="mongodb://localhost:27017")
    database_name: str = Field(default="intelixir")

    allow_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
        ],
        description="List of origins allowed for CORS.",
    )
    frontend_url: str = Field(default="http://localhost:5173")

    # Generative model
    gemini_api_key: Optional[str] = Field(default=None)
    gemini_model: str = Field(default="gemini-1.5-flash")

    # NewsAPI.org
    news_api_key: Optional[str] = Field(default=None)
    news_api_url: str = Field(default="https://newsapi.org/v2")
    news_api_timeout: float = Field(default=30.0, description="Seconds per request.")

    # Ingestion
    ingestion_enabled: bool = Field(default=True, description="Run the hourly ingestion job.")
    ingestion_interval_minutes: int = Field(default=60)
    ingestion_page_size: int = Field(default=5, description="Articles requested per topic.")
    ingestion_topic_delay_seconds: float = Field(default=2.0, description="Pause between topics.")

    # Digests
    digest_enabled: bool = Field(default=True)
    digest_hour: int = Field(default=8, ge=0, le=23)
    digest_max_posts: int = Field(default=10)

    # Bootstrap admin (nominal author of ingested posts)
    admin_email: str = Field(default="admin@intelixir.com")
    admin_password: str = Field(default="admin123")

    # Auth
    session_ttl_days: int = Field(default=7)
    password_reset_ttl_minutes: int = Field(default=10)

    # SMTP
    smtp_host: str = Field(default="smtp.gmail.com")
    smtp_port: int = Field(default=587)
    smtp_user: str = Field(default="")
    smtp_password: str = Field(default="")
    smtp_use_tls: bool = Field(default=True)
    from_email: str = Field(default="")
    from_name: str = Field(default="Intelixir")

    model_config = SettingsConfigDict(
        extra="ignore",
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
    )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
