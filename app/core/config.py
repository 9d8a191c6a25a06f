"""
Application Configuration Module

Centralizes all configuration using environment variables with Pydantic Settings.
Supports two modes:
    - DEVELOPMENT: In-memory catalog fallback and mock CDN allowed
    - PRODUCTION: PostgreSQL catalog and the real ImageKit API

The catalog store is chosen once at startup: when DATABASE_URL is set and
reachable the relational store is used, otherwise the in-memory store.

Usage:
    from app.core.config import get_settings

    settings = get_settings()
    if settings.imagekit_configured:
        # Talk to ImageKit

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import sys
from enum import Enum
from typing import Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentMode(str, Enum):
    """
    Application environment modes.

    Attributes:
        DEVELOPMENT: Local work, in-memory fallback and mock CDN allowed
        PRODUCTION: Live storefront
        STAGING: Pre-production with real services
    """
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    STAGING = "staging"


class CdnProvider(str, Enum):
    """Which image CDN backend the sync job and upload auth talk to."""
    IMAGEKIT = "imagekit"
    MOCK = "mock"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Sensitive values (ImageKit private key, database password) should NEVER
    be committed to version control.

    Attributes:
        env_mode: Current environment (development/production/staging)
        debug: Enable verbose logging and error details

        # Database
        database_url: Async SQLAlchemy URL, empty for the in-memory store

        # Image CDN
        imagekit_public_key: Public key handed to browsers for uploads
        imagekit_private_key: Private key for signing and listing files
        imagekit_url_endpoint: Public URL endpoint of the media library

        # Storefront
        whatsapp_phone: Number that receives orders (empty = let user pick)
        currency_label: Currency suffix shown in order messages
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================

    env_mode: EnvironmentMode = Field(
        default=EnvironmentMode.DEVELOPMENT,
        description="Application environment mode"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )

    # ==========================================================================
    # APPLICATION
    # ==========================================================================

    app_name: str = Field(
        default="Restaurant Storefront",
        description="Application display name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8001,
        description="API server port"
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    # ==========================================================================
    # DATABASE
    # ==========================================================================

    database_url: Optional[str] = Field(
        default=None,
        description="Async database URL (postgresql+psycopg://...). Empty = in-memory"
    )

    # ==========================================================================
    # REDIS / CELERY
    # ==========================================================================

    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )

    # ==========================================================================
    # IMAGE CDN (IMAGEKIT)
    # ==========================================================================

    cdn_provider: CdnProvider = Field(
        default=CdnProvider.IMAGEKIT,
        description="Image CDN backend (imagekit or mock)"
    )
    imagekit_public_key: Optional[str] = Field(
        default=None,
        description="ImageKit public key"
    )
    imagekit_private_key: Optional[str] = Field(
        default=None,
        description="ImageKit private key (private_...)"
    )
    imagekit_url_endpoint: Optional[str] = Field(
        default=None,
        description="ImageKit URL endpoint (https://ik.imagekit.io/<id>)"
    )
    imagekit_auth_expire_seconds: int = Field(
        default=2400,
        description="Lifetime of signed upload credentials"
    )
    cdn_list_page_size: int = Field(
        default=1000,
        description="Files requested per listing page"
    )

    # ==========================================================================
    # IMAGE SYNC
    # ==========================================================================

    cdn_sync_enabled: bool = Field(
        default=False,
        description="Run the periodic CDN sync inside the API process"
    )
    cdn_sync_interval_seconds: int = Field(
        default=120,
        description="Seconds between periodic sync passes"
    )
    sync_default_product_price: int = Field(
        default=100,
        description="Price (minor units) for products created by the sync job"
    )
    sync_default_location_price: int = Field(
        default=100,
        description="Price (minor units) for delivery locations created by the sync job"
    )
    sync_default_unit_type: str = Field(
        default="piece",
        description="Unit type for products created by the sync job"
    )
    default_category_name: str = Field(
        default="مقبلات",
        description="Name of the category created when the catalog has none"
    )
    default_category_slug: str = Field(
        default="appetizers",
        description="Slug of the default category"
    )
    default_category_image: str = Field(
        default="/images/hero1.png",
        description="Placeholder image for the default category"
    )

    # ==========================================================================
    # STOREFRONT
    # ==========================================================================

    whatsapp_phone: Optional[str] = Field(
        default=None,
        description="WhatsApp number receiving orders, digits only"
    )
    currency_label: str = Field(
        default="د.أ",
        description="Currency label used in order messages"
    )
    seed_on_startup: bool = Field(
        default=True,
        description="Insert sample catalog rows when the tables are empty"
    )

    # ==========================================================================
    # VALIDATORS
    # ==========================================================================

    @field_validator("env_mode", mode="before")
    @classmethod
    def validate_env_mode(cls, v: str) -> EnvironmentMode:
        """Convert string to EnvironmentMode enum."""
        if isinstance(v, EnvironmentMode):
            return v
        try:
            return EnvironmentMode(v.lower())
        except ValueError:
            valid = [e.value for e in EnvironmentMode]
            raise ValueError(f"Invalid env_mode. Must be one of: {valid}")

    @field_validator("database_url", "whatsapp_phone", mode="before")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.env_mode == EnvironmentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.env_mode == EnvironmentMode.PRODUCTION

    @property
    def use_real_services(self) -> bool:
        """Check if real external services should be used."""
        return self.env_mode in (EnvironmentMode.PRODUCTION, EnvironmentMode.STAGING)

    @property
    def imagekit_configured(self) -> bool:
        """All three ImageKit credentials are present."""
        return bool(
            self.imagekit_public_key
            and self.imagekit_private_key
            and self.imagekit_url_endpoint
        )

    @property
    def cors_origins_list(self) -> list[str]:
        """Get allowed CORS origins as a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # ==========================================================================
    # VALIDATION METHODS
    # ==========================================================================

    def validate_production_config(self) -> list[str]:
        """
        Validate that all required production settings are configured.

        Returns:
            List of missing configuration keys (empty if all present)
        """
        missing = []

        if self.use_real_services:
            if not self.database_url:
                missing.append("DATABASE_URL")
            if not self.imagekit_public_key:
                missing.append("IMAGEKIT_PUBLIC_KEY")
            if not self.imagekit_private_key:
                missing.append("IMAGEKIT_PRIVATE_KEY")
            if not self.imagekit_url_endpoint:
                missing.append("IMAGEKIT_URL_ENDPOINT")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded only once per process so every module sees
    the same configuration.

    Returns:
        Settings: Configured application settings
    """
    return Settings()


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================

def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured root logger
    """
    settings = get_settings()

    if settings.debug:
        level = logging.DEBUG

    log_format = "%(asctime)s │ %(levelname)-8s │ %(name)-25s │ %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    return logging.getLogger("app")
