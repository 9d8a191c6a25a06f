"""
Mock CDN Service Implementation

Simulates the ImageKit media library without making real API calls.
Used with CDN_PROVIDER=mock for local development and in tests.

Behavior:
    - Serves an in-memory file listing that can be edited at runtime
    - Simulates network latency (disabled by default)
    - Optional failure rate for testing error handling

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import hashlib
import hmac
import logging
import random
import time
import uuid
from typing import Iterable, Optional

from app.services.cdn.base import (
    BaseCdnService,
    CdnAuthParameters,
    CdnError,
    RemoteFile,
)

logger = logging.getLogger(__name__)


def sign_upload_token(
    private_key: str,
    public_key: str,
    url_endpoint: str,
    expire_seconds: int,
    token: Optional[str] = None,
    now: Optional[float] = None,
) -> CdnAuthParameters:
    """
    Sign upload credentials the way ImageKit's SDK does, for the mock
    library's fixed key pair.

    Args:
        private_key: Secret used as the HMAC key
        public_key: Public key returned alongside the signature
        url_endpoint: Media library URL endpoint
        expire_seconds: Lifetime of the credentials
        token: Fixed token (tests); random UUID when omitted
        now: Fixed clock (tests); current time when omitted

    Returns:
        CdnAuthParameters
    """
    token = token or str(uuid.uuid4())
    expire = int(now if now is not None else time.time()) + expire_seconds
    signature = hmac.new(
        private_key.encode("utf-8"),
        f"{token}{expire}".encode("utf-8"),
        hashlib.sha1,
    ).hexdigest()

    return CdnAuthParameters(
        token=token,
        expire=expire,
        signature=signature,
        public_key=public_key,
        url_endpoint=url_endpoint,
    )


class MockCdnService(BaseCdnService):
    """
    Mock implementation of the image CDN.

    Attributes:
        failure_rate: Probability of simulated listing failure (0.0-1.0)
        min_latency: Minimum response time in seconds
        max_latency: Maximum response time in seconds

    Example:
        >>> service = MockCdnService()
        >>> service.add_file("kibbeh_fried.png", folder="/products")
        >>> files = await service.list_files()
    """

    URL_ENDPOINT = "https://ik.imagekit.io/mock"
    PUBLIC_KEY = "public_mock_key"
    PRIVATE_KEY = "private_mock_key"

    def __init__(
        self,
        files: Optional[Iterable[RemoteFile]] = None,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        expire_seconds: int = 2400,
    ):
        self.files: list[RemoteFile] = list(files or [])
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.expire_seconds = expire_seconds
        self.list_calls = 0

        logger.info(
            f"MockCdnService initialized "
            f"({len(self.files)} files, failure_rate={failure_rate:.0%})"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    async def _simulate_latency(self) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def add_file(
        self,
        name: str,
        folder: str = "/products",
        file_id: Optional[str] = None,
    ) -> RemoteFile:
        """
        Put a file into the mock library.

        Args:
            name: File name including extension
            folder: Library folder, e.g. "/categories"
            file_id: Fixed id; random when omitted

        Returns:
            RemoteFile: The added entry
        """
        folder = "/" + folder.strip("/") if folder.strip("/") else ""
        path = f"{folder}/{name}"
        remote = RemoteFile(
            file_id=file_id or uuid.uuid4().hex[:24],
            name=name,
            url=f"{self.URL_ENDPOINT}{path}",
            file_path=path,
        )
        self.files.append(remote)
        return remote

    def add_folder(self, name: str) -> RemoteFile:
        """Put a directory marker into the mock library."""
        remote = RemoteFile(
            file_id=uuid.uuid4().hex[:24],
            name=f"{name.strip('/')}/",
            url="",
            file_path=f"/{name.strip('/')}",
            is_folder=True,
        )
        self.files.append(remote)
        return remote

    async def list_files(self) -> list[RemoteFile]:
        await self._simulate_latency()
        self.list_calls += 1

        if self._should_fail():
            logger.warning("Mock CDN: simulated listing failure")
            raise CdnError("Simulated CDN failure")

        logger.debug(f"Mock CDN: listing {len(self.files)} entries")
        return list(self.files)

    def get_auth_parameters(self) -> CdnAuthParameters:
        return sign_upload_token(
            private_key=self.PRIVATE_KEY,
            public_key=self.PUBLIC_KEY,
            url_endpoint=self.URL_ENDPOINT,
            expire_seconds=self.expire_seconds,
        )

    async def health_check(self) -> bool:
        return True
