"""Application configuration using pydantic-settings."""

from functools import lru_cache
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
    api_port: int = 8000

    # Hosted database / auth service
    supabase_url: str = Field(default="")
    supabase_anon_key: str = Field(default="")
    supabase_service_role_key: str = Field(default="")  # server-side only

    # Static bearer tokens for local development: "token:user_id:role,..."
    auth_static_tokens: str = Field(default="")

    # AI gateway (OpenAI-compatible chat completions)
    ai_gateway_url: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    ai_gateway_api_key: str = Field(default="")
    ai_model: str = "google/gemini-2.5-flash"
    ai_timeout_seconds: float = 60.0

    # Hosting
    deployment_host: str = "yourapp.com"
    deploy_build_prep_seconds: float = 2.0
    deploy_duration_seconds: float = 3.0
    deploy_success_rate: float = Field(default=0.9, ge=0.0, le=1.0)
    deploy_pipeline_timeout_seconds: float | None = None
    task_shutdown_grace_seconds: float = 10.0

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"
    log_buffer_size: int = Field(default=1000, ge=1)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def uses_supabase_auth(self) -> bool:
        """Whether credentials are verified against the hosted auth service."""
        return bool(self.supabase_url and self.supabase_service_role_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
