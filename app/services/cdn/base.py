"""
Image CDN Service Abstract Base Class

Defines the interface contract for image CDN implementations.
Both MockCdnService and ImageKitCdnService must implement these methods.

Use Cases:
    - Listing the remote media library for the catalog sync job
    - Signing credentials for direct browser-to-CDN uploads

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class CdnError(Exception):
    """The CDN could not be reached or answered with an error."""


class CdnConfigurationError(CdnError):
    """CDN credentials are missing."""


@dataclass
class RemoteFile:
    """
    One entry of the remote media library listing.

    Attributes:
        file_id: Provider identifier, stable across listings
        name: File name, e.g. "kibbeh_fried_3.png"
        url: Public URL of the file
        file_path: Full path inside the library, e.g. "/products/kibbeh_fried_3.png"
        is_folder: True for directory entries
    """
    file_id: str
    name: str
    url: str
    file_path: str = ""
    is_folder: bool = False

    @property
    def is_directory_marker(self) -> bool:
        """Folder entries and names ending in a path separator."""
        return self.is_folder or self.name.endswith("/")


@dataclass
class CdnAuthParameters:
    """
    Signed upload credentials handed to the browser.

    Attributes:
        token: Random one-time token
        expire: Unix timestamp after which the signature is rejected
        signature: HMAC-SHA1 of token + expire keyed by the private key
        public_key: Public API key the browser uploads with
        url_endpoint: Media library URL endpoint
    """
    token: str
    expire: int
    signature: str
    public_key: str
    url_endpoint: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "token": self.token,
            "expire": self.expire,
            "signature": self.signature,
            "publicKey": self.public_key,
            "urlEndpoint": self.url_endpoint,
        }


class BaseCdnService(ABC):
    """
    Abstract base class for image CDN services.

    Example:
        >>> service = get_cdn_service()
        >>> files = await service.list_files()
        >>> print(len(files))
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the CDN provider.

        Returns:
            str: Provider name (e.g., "mock", "imagekit")
        """
        pass

    @abstractmethod
    async def list_files(self) -> list[RemoteFile]:
        """
        List the whole media library.

        No cursor is kept between calls; every call re-lists everything.

        Returns:
            list[RemoteFile]: All entries, folders included

        Raises:
            CdnError: If the listing could not be fetched
        """
        pass

    @abstractmethod
    def get_auth_parameters(self) -> CdnAuthParameters:
        """
        Sign credentials for a direct client upload.

        Returns:
            CdnAuthParameters
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify connectivity to the CDN.

        Returns:
            bool: True if service is operational
        """
        pass
