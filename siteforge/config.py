"""Application configuration using pydantic-settings."""

import tempfile
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file and override existing env vars
load_dotenv(override=True)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 4000
    public_base_url: str = "http://localhost:4000"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Object storage
    storage_backend: Literal["s3", "memory"] = "s3"
    s3_bucket_name: str = Field(default="")
    s3_endpoint_url: str | None = None
    aws_region: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None

    # Build workspace
    workspace_root: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "siteforge"
    )
    fetch_timeout_seconds: float = 300.0
    install_timeout_seconds: float = 600.0
    build_timeout_seconds: float = 900.0
    output_tail_lines: int = 40

    # Serving
    default_owner_id: str = "anon"
    default_project_id: str = "demo"
    root_routes_enabled: bool = True  # /, /static, /assets and root files

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"
    log_directory: str | None = None
    log_file_name: str = "siteforge.log"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
