"""
Core configuration settings for the Multisite Platform API.

Uses Pydantic Settings for environment-based configuration management
following FastAPI best practices.
"""

import socket
from typing import List, Optional
from uuid import uuid4

from pydantic import validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application Info
    PROJECT_NAME: str = "Multisite Platform API"
    VERSION: str = "0.1.0"
    DESCRIPTION: str = "Multi-tenant site management with cluster-wide activation"

    # API Configuration
    API_V1_STR: str = "/api/v1"

    # CORS Configuration
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
    ]

    @validator("CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v):
        """Parse CORS origins from environment variable."""
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @validator("DEBUG", "MULTISITE_ENABLED", "SSL_ENABLED", pre=True)
    def parse_flag(cls, v):
        """Parse boolean flags from environment."""
        if isinstance(v, str):
            return v.lower() in ("true", "1", "yes", "on")
        return v

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Site Configuration
    SITE_NAME: str = "Multisite"
    SITE_ROOT: str = "http://localhost:8080"
    SSL_ENABLED: bool = False

    # Multi-tenant Configuration
    MULTISITE_ENABLED: bool = False
    MULTISITE_GLOBAL_ROOT: Optional[str] = None
    ADMIN_PATH_PREFIXES: List[str] = ["/admin", "/api/v1/admin"]
    UNROUTED_PATH_PREFIXES: List[str] = [
        "/health",
        "/api/v1/ping",
        "/api/v1/status",
        "/api/docs",
        "/api/redoc",
        "/api/v1/openapi.json",
    ]

    @validator("ADMIN_PATH_PREFIXES", "UNROUTED_PATH_PREFIXES", pre=True)
    def assemble_prefixes(cls, v):
        """Parse path prefixes from a comma separated environment variable."""
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    # Document Store Configuration
    DOCUMENT_STORE_BACKEND: str = "memory"  # Options: memory, supabase
    SITE_COLLECTION: str = "site"

    # Supabase Configuration
    SUPABASE_URL: str = "https://placeholder.supabase.co"
    SUPABASE_SERVICE_ROLE_KEY: str = "placeholder_service_key"

    # Command Channel Configuration
    COMMAND_CHANNEL_BACKEND: str = "local"  # Options: local, redis
    COMMAND_CHANNEL_NAME: str = "multisite:commands"
    REDIS_URL: str = "redis://localhost:6379"
    NODE_ID: str = f"{socket.gethostname()}-{uuid4().hex[:8]}"
    COMMAND_RESPONSE_TIMEOUT_SECONDS: float = 0.0

    # Job Configuration
    JOB_HISTORY_LIMIT: int = 100

    @validator("DOCUMENT_STORE_BACKEND")
    def validate_store_backend(cls, v):
        if v not in ("memory", "supabase"):
            raise ValueError("DOCUMENT_STORE_BACKEND must be 'memory' or 'supabase'")
        return v

    @validator("COMMAND_CHANNEL_BACKEND")
    def validate_channel_backend(cls, v):
        if v not in ("local", "redis"):
            raise ValueError("COMMAND_CHANNEL_BACKEND must be 'local' or 'redis'")
        return v

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get settings instance - useful for dependency injection."""
    return settings
