"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    # PostgreSQL (template metadata mirror)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "portfolio_user"
    postgres_password: str = "password"
    postgres_db: str = "portfolio_db"
    database_url: Optional[str] = None  # overrides the postgres_* values

    # Filesystem layout
    templates_dir: Path = PROJECT_ROOT / "public" / "templates"
    uploads_dir: Path = PROJECT_ROOT / "uploads"

    # Limits
    max_template_upload_mb: int = 50
    max_resume_upload_mb: int = 5

    # Generated archive expiry sweep
    portfolio_archive_max_age_hours: float = 24
    cleanup_interval_minutes: float = 60
    cleanup_enabled: bool = True

    # DeepSeek AI (OpenAI-compatible)
    deepseek_api_key: str = ""
    deepseek_base_url: str = "https://api.deepseek.com/v1"
    deepseek_model: str = "deepseek-chat"

    # JWT Auth (tokens are issued by the identity provider)
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # App
    cors_origins: str = "*"  # comma separated
    debug: bool = False
    log_level: str = "INFO"

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def sqlalchemy_url(self) -> str:
        """Construct the database connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def registry_path(self) -> Path:
        return self.templates_dir / "registry.json"

    @property
    def template_uploads_dir(self) -> Path:
        return self.uploads_dir / "templates"

    @property
    def portfolio_downloads_dir(self) -> Path:
        return self.uploads_dir / "portfolios"

    @property
    def staging_dir(self) -> Path:
        return self.uploads_dir / "staging"

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
