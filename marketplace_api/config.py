"""
Configuration management using Pydantic settings.
Handles database URL, JWT secrets, object storage credentials and image pipeline limits.
"""

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings
from typing import Optional, List
from functools import lru_cache


class StorageConfig(BaseModel):
    """Explicit object storage configuration handed to the storage gateway."""

    endpoint_url: Optional[str] = None
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str
    addressing_style: str = "virtual"
    key_prefix: str = "photos"
    image_max_width: int = 1200
    image_max_height: int = 800
    image_quality: int = 80


class Settings(BaseSettings):
    """Application settings loaded from the environment."""

    # Application configuration
    app_name: str = "Listings Marketplace API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False

    # Database configuration
    database_url: str = "postgresql+asyncpg://postgres:postgres@db:5432/listings"
    create_tables_on_startup: bool = False

    # JWT configuration
    jwt_secret_key: str = "your-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Object storage (S3 compatible)
    storage_endpoint_url: Optional[str] = "https://nyc3.digitaloceanspaces.com"
    storage_region: str = "nyc3"
    storage_bucket: str = "listings-photos"
    storage_access_key_id: str = ""
    storage_secret_access_key: str = ""
    storage_addressing_style: str = "virtual"
    storage_key_prefix: str = "photos"
    signed_url_ttl_seconds: int = 3600

    # Image pipeline
    image_max_width: int = 1200
    image_max_height: int = 800
    image_quality: int = 80
    max_photo_size: int = 10 * 1024 * 1024  # 10MB decoded
    max_photos_per_scope: int = 5

    # API configuration
    api_v1_prefix: str = "/api/v1"
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8000"]
    max_request_size: int = 80 * 1024 * 1024  # five base64 photos plus fields

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Ensure an async driver is used."""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v: str) -> str:
        """Validate JWT secret key strength."""
        if not v:
            raise ValueError("JWT_SECRET_KEY is required")
        if len(v) < 32 and v != "your-secret-key-change-in-production":
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters long")
        return v

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment setting."""
        allowed_envs = ["development", "testing", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of: {allowed_envs}")
        return v

    @field_validator("storage_addressing_style")
    @classmethod
    def validate_addressing_style(cls, v: str) -> str:
        if v not in ("virtual", "path", "auto"):
            raise ValueError("Storage addressing style must be one of: virtual, path, auto")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def storage_config(self) -> StorageConfig:
        """Build the storage gateway configuration from the flat settings."""
        return StorageConfig(
            endpoint_url=self.storage_endpoint_url or None,
            region=self.storage_region,
            bucket=self.storage_bucket,
            access_key_id=self.storage_access_key_id,
            secret_access_key=self.storage_secret_access_key,
            addressing_style=self.storage_addressing_style,
            key_prefix=self.storage_key_prefix.strip("/"),
            image_max_width=self.image_max_width,
            image_max_height=self.image_max_height,
            image_quality=self.image_quality,
        )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one instance of settings throughout the app lifecycle.
    """
    return Settings()


# Global settings instance
settings = get_settings()
