"""
Image CDN Service Factory

Provides a single entry point for obtaining a CDN service instance.
Selects Mock or ImageKit based on the CDN_PROVIDER configuration.

Usage:
    from app.services.cdn import get_cdn_service

    cdn = get_cdn_service()
    files = await cdn.list_files()

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from app.core.config import CdnProvider, get_settings
from app.services.cdn.base import (
    BaseCdnService,
    CdnAuthParameters,
    CdnConfigurationError,
    CdnError,
    RemoteFile,
)
from app.services.cdn.imagekit import ImageKitCdnService
from app.services.cdn.mock import MockCdnService, sign_upload_token

logger = logging.getLogger(__name__)


@lru_cache()
def get_cdn_service() -> BaseCdnService:
    """
    Get the configured CDN service instance.

    Returns:
        BaseCdnService: Configured CDN service instance

    Raises:
        CdnConfigurationError: If ImageKit is selected but credentials
            are missing. Not cached, so adding credentials and calling
            reset_cdn_service() picks them up.
    """
    settings = get_settings()

    if settings.cdn_provider == CdnProvider.MOCK:
        logger.info("CDN Service: Using MockCdnService")
        return MockCdnService(
            min_latency=0.1 if settings.is_development else 0.0,
            max_latency=0.4 if settings.is_development else 0.0,
            expire_seconds=settings.imagekit_auth_expire_seconds,
        )

    logger.info(f"CDN Service: Using ImageKitCdnService ({settings.env_mode.value} mode)")
    return ImageKitCdnService(settings)


def reset_cdn_service() -> None:
    """
    Clear the cached CDN service instance.

    Useful for testing or when configuration changes at runtime.
    """
    get_cdn_service.cache_clear()
    logger.debug("CDN service cache cleared")


__all__ = [
    "get_cdn_service",
    "reset_cdn_service",
    "BaseCdnService",
    "CdnAuthParameters",
    "CdnConfigurationError",
    "CdnError",
    "RemoteFile",
    "sign_upload_token",
    "ImageKitCdnService",
    "MockCdnService",
]
