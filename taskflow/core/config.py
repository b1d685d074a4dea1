"""
Application configuration using Pydantic Settings.
Environment variables are loaded from .env file.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Database (postgresql:// and sqlite:/// URLs are rewritten to async drivers)
    database_url: str = "sqlite+aiosqlite:///./taskflow.db"
    database_echo: bool = False

    # API Configuration
    project_name: str = "TaskFlow"
    debug: bool = False
    log_level: str = "INFO"

    # CORS
    frontend_url: str = "http://localhost:3000"
    allowed_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Classification
    classifier_timeout: float = 30.0  # seconds per classifier call
    auto_categorize_concurrency: int = 1


# Global settings instance
settings = Settings()
