"""
Configuration management for the Lorekeeper backend.

Uses pydantic-settings to load configuration from environment variables
with sensible defaults for development.
"""

from typing import List, Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Lorekeeper"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True

    # API
    API_V1_PREFIX: str = "/api/v1"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = ["*"]
    CORS_ALLOW_HEADERS: List[str] = ["*"]

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    RELOAD: bool = True

    # ==========================================================================
    # Session Token Configuration
    # Bearer tokens are issued by the accounts service; this backend only
    # decodes them into an AuthContext.
    # ==========================================================================

    AUTH_JWT_SECRET: str = "lorekeeper-development-signing-secret-change-me"  # Shared signing secret (override in production)
    AUTH_JWT_ALGORITHMS: List[str] = ["HS256"]
    AUTH_JWT_ISSUER: Optional[str] = None  # Verified only when set
    AUTH_JWT_AUDIENCE: Optional[str] = None  # Verified only when set

    # ==========================================================================
    # Neo4j Configuration
    # Story graph database (characters, locations, moments)
    # ==========================================================================

    NEO4J_URI: str = "bolt://localhost:7687"
    NEO4J_USER: str = "neo4j"
    NEO4J_PASSWORD: str = "secret"
    NEO4J_DATABASE: str = "neo4j"
    NEO4J_MAX_CONNECTION_POOL_SIZE: int = 50
    NEO4J_CONNECTION_TIMEOUT: float = 30.0  # seconds
    NEO4J_CONNECTION_ACQUISITION_TIMEOUT: float = 30.0  # seconds
    NEO4J_MAX_TRANSACTION_RETRY_TIME: float = 30.0  # seconds

    # ==========================================================================
    # Story content
    # ==========================================================================

    MOMENT_PREVIEW_LENGTH: int = 300
    MOMENT_PAGE_SIZE_DEFAULT: int = 20

    # ==========================================================================
    # Observability
    # ==========================================================================

    OTEL_ENABLED: bool = False  # Export traces to OTEL_EXPORTER_OTLP_ENDPOINT

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse comma-separated CORS origins into a list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        elif isinstance(v, list):
            return v
        return []


# Global settings instance
settings = Settings()
