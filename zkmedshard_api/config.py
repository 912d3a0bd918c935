"""
Configuration for ZKMedShard API.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    API configuration settings.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Server
    host: str = Field(
        default="127.0.0.1",
        description="API host (127.0.0.1 for local only, 0.0.0.0 for external)",
    )
    port: int = Field(
        default=4000,
        description="API port",
        validation_alias="PORT",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    allowed_origins: list[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="CORS allowed origins"
    )

    # Store
    # Checked at startup rather than here so the app module stays importable.
    database_url: Optional[str] = Field(
        default=None,
        description="Store connection string (memory:// or a SQLAlchemy URL)",
    )

    # Session tokens
    # WARNING: the default secret is for local development only.
    jwt_secret: str = Field(
        default="dev-secret",
        description="Symmetric key used to sign session tokens",
    )
    jwt_algorithm: str = Field(default="HS256", description="Session token signing algorithm")
    session_ttl_hours: int = Field(default=12, gt=0, description="Session token lifetime in hours")

    # Login challenges
    challenge_ttl_seconds: int = Field(
        default=300,
        gt=0,
        description="How long an issued nonce may be used to log in",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
