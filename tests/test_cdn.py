import hashlib
import hmac
import time
from types import SimpleNamespace

import pytest

from app.core.config import CdnProvider, Settings
from app.services.cdn import (
    CdnConfigurationError,
    CdnError,
    ImageKitCdnService,
    MockCdnService,
    RemoteFile,
    sign_upload_token,
)


def imagekit_settings(**overrides) -> Settings:
    values = dict(
        cdn_provider=CdnProvider.IMAGEKIT,
        imagekit_public_key="public_test",
        imagekit_private_key="private_test",
        imagekit_url_endpoint="https://ik.imagekit.io/demo",
        cdn_list_page_size=2,
    )
    values.update(overrides)
    return Settings(**values)


def listing_entry(i: int) -> SimpleNamespace:
    return SimpleNamespace(
        type="file",
        file_id=f"file-{i}",
        name=f"dish_{i}.png",
        file_path=f"/products/dish_{i}.png",
        url=f"https://ik.imagekit.io/demo/products/dish_{i}.png",
    )


class FakeImageKit:
    """Stands in for imagekitio.ImageKit; serves listing pages by skip offset."""

    def __init__(self, pages=None, error=None):
        self.pages = pages or {}
        self.error = error
        self.requests = []

    def list_files(self, options=None):
        self.requests.append((options.skip, options.limit))
        if self.error:
            raise self.error
        return SimpleNamespace(list=self.pages.get(options.skip, []))


class TestUploadSignature:
    def test_signature_is_hmac_sha1_of_token_and_expire(self):
        params = sign_upload_token(
            private_key="secret",
            public_key="public",
            url_endpoint="https://ik.imagekit.io/demo",
            expire_seconds=2400,
            token="tok",
            now=1_700_000_000,
        )

        expected = hmac.new(b"secret", b"tok1700002400", hashlib.sha1).hexdigest()
        assert params.expire == 1_700_002_400
        assert params.signature == expected
        assert params.to_dict()["publicKey"] == "public"

    def test_fresh_token_each_call(self):
        first = MockCdnService().get_auth_parameters()
        second = MockCdnService().get_auth_parameters()
        assert first.token != second.token

    def test_imagekit_signs_with_private_key(self):
        service = ImageKitCdnService(imagekit_settings())

        params = service.get_auth_parameters()

        expected = hmac.new(
            b"private_test",
            f"{params.token}{params.expire}".encode(),
            hashlib.sha1,
        ).hexdigest()
        assert params.signature == expected
        assert params.public_key == "public_test"
        assert params.url_endpoint == "https://ik.imagekit.io/demo"
        assert params.expire > time.time()


class TestImageKitListing:
    async def test_pages_until_short_page(self):
        client = FakeImageKit(pages={
            0: [listing_entry(0), listing_entry(1)],
            2: [listing_entry(2)],
        })

        service = ImageKitCdnService(imagekit_settings(), client=client)
        files = await service.list_files()

        assert [f.file_id for f in files] == ["file-0", "file-1", "file-2"]
        assert files[2].file_path == "/products/dish_2.png"
        assert client.requests == [(0, 2), (2, 2)]

    async def test_folder_entries_are_markers(self):
        client = FakeImageKit(pages={0: [
            SimpleNamespace(type="folder", folder_id="f1", name="products", folder_path="/products"),
        ]})

        service = ImageKitCdnService(imagekit_settings(), client=client)
        [folder] = await service.list_files()

        assert folder.is_directory_marker
        assert folder.file_id == "f1"
        assert folder.file_path == "/products"

    async def test_sdk_error_becomes_cdn_error(self):
        client = FakeImageKit(error=RuntimeError("401 Unauthorized"))
        service = ImageKitCdnService(imagekit_settings(), client=client)

        with pytest.raises(CdnError) as exc_info:
            await service.list_files()

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert await service.health_check() is False

    async def test_health_check_lists_one_file(self):
        client = FakeImageKit(pages={0: [listing_entry(0)]})
        service = ImageKitCdnService(imagekit_settings(), client=client)

        assert await service.health_check() is True
        assert client.requests == [(0, 1)]

    def test_missing_credentials(self):
        with pytest.raises(CdnConfigurationError):
            ImageKitCdnService(imagekit_settings(imagekit_private_key=None))


class TestMockCdn:
    def test_directory_marker_by_trailing_slash(self):
        assert RemoteFile(file_id="x", name="products/", url="").is_directory_marker
        assert not RemoteFile(file_id="y", name="kibbeh.png", url="").is_directory_marker

    async def test_listing_is_a_copy(self):
        cdn = MockCdnService()
        cdn.add_file("kibbeh_fried.png")

        files = await cdn.list_files()
        files.clear()

        assert len(await cdn.list_files()) == 1
        assert cdn.list_calls == 2
