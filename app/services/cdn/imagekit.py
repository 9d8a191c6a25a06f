"""
ImageKit CDN Service Implementation

Production implementation using the official ImageKit Python SDK.
Used when CDN_PROVIDER=imagekit (the default).

Requirements:
    - IMAGEKIT_PUBLIC_KEY, IMAGEKIT_PRIVATE_KEY and IMAGEKIT_URL_ENDPOINT
      must be set in environment

API Documentation:
    https://github.com/imagekit-developer/imagekit-python

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import time
import uuid
from datetime import datetime
from typing import Any, Optional

from imagekitio import ImageKit
from imagekitio.models.ListAndSearchFileRequestOptions import ListAndSearchFileRequestOptions

from app.core.config import Settings, get_settings
from app.services.cdn.base import (
    BaseCdnService,
    CdnAuthParameters,
    CdnConfigurationError,
    CdnError,
    RemoteFile,
)

logger = logging.getLogger(__name__)


class ImageKitCdnService(BaseCdnService):
    """
    Production ImageKit CDN service implementation.

    Lists the media library page by page (skip/limit) until a short
    page comes back, and signs upload credentials with the SDK.

    Example:
        >>> service = ImageKitCdnService()
        >>> files = await service.list_files()
        >>> print(files[0].file_path)
        '/products/kibbeh_fried.png'
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[ImageKit] = None,
    ):
        """
        Initialize the ImageKit SDK client.

        Args:
            settings: Settings to read credentials from (defaults to global)
            client: Pre-built SDK client, used by tests

        Raises:
            CdnConfigurationError: If any ImageKit credential is missing
        """
        settings = settings or get_settings()

        if not settings.imagekit_configured:
            raise CdnConfigurationError(
                "ImageKit is not configured. Set IMAGEKIT_PUBLIC_KEY, "
                "IMAGEKIT_PRIVATE_KEY and IMAGEKIT_URL_ENDPOINT."
            )

        self._public_key = settings.imagekit_public_key
        self._url_endpoint = settings.imagekit_url_endpoint
        self._page_size = settings.cdn_list_page_size
        self._expire_seconds = settings.imagekit_auth_expire_seconds
        self._client = client or ImageKit(
            private_key=settings.imagekit_private_key,
            public_key=settings.imagekit_public_key,
            url_endpoint=settings.imagekit_url_endpoint,
        )

        logger.info("ImageKitCdnService initialized")

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "imagekit"

    @staticmethod
    def _parse_entry(entry: Any) -> RemoteFile:
        """Map one SDK listing result to a RemoteFile."""
        return RemoteFile(
            file_id=getattr(entry, "file_id", None) or getattr(entry, "folder_id", None) or "",
            name=getattr(entry, "name", None) or "",
            url=getattr(entry, "url", None) or "",
            file_path=getattr(entry, "file_path", None) or getattr(entry, "folder_path", None) or "",
            is_folder=getattr(entry, "type", None) == "folder",
        )

    def _list_page(self, skip: int, limit: int) -> list[Any]:
        # The SDK is synchronous; callers run this in a worker thread
        result = self._client.list_files(
            options=ListAndSearchFileRequestOptions(type="file", skip=skip, limit=limit)
        )
        return list(result.list or [])

    async def list_files(self) -> list[RemoteFile]:
        """
        Fetch the full media library listing.

        Raises:
            CdnError: If the SDK reports an API or transport failure
        """
        start_time = datetime.now()
        files: list[RemoteFile] = []
        skip = 0

        try:
            while True:
                page = await asyncio.to_thread(self._list_page, skip, self._page_size)
                files.extend(self._parse_entry(entry) for entry in page)

                if len(page) < self._page_size:
                    break
                skip += self._page_size

        except Exception as e:
            # The SDK raises one exception type per HTTP status and lets
            # requests' transport errors through unchanged
            logger.error(f"ImageKit: listing failed - {type(e).__name__}: {e}")
            raise CdnError(f"ImageKit listing failed: {e}") from e

        elapsed_ms = (datetime.now() - start_time).total_seconds() * 1000
        logger.info(f"ImageKit: listed {len(files)} entries in {elapsed_ms:.0f}ms")
        return files

    def get_auth_parameters(self) -> CdnAuthParameters:
        params = self._client.get_authentication_parameters(
            token=str(uuid.uuid4()),
            expire=int(time.time()) + self._expire_seconds,
        )
        return CdnAuthParameters(
            token=params["token"],
            expire=int(params["expire"]),
            signature=params["signature"],
            public_key=self._public_key,
            url_endpoint=self._url_endpoint,
        )

    async def health_check(self) -> bool:
        """Check ImageKit reachability with a one-file listing."""
        try:
            await asyncio.to_thread(self._list_page, 0, 1)
            return True
        except Exception as e:
            logger.error(f"ImageKit health check failed: {e}")
            return False
