import asyncio

import pytest

from app.core.config import Settings
from app.schemas import CategoryCreate, ProductCreate, SyncedImageCreate, SyncReport
from app.services.cdn import CdnError, MockCdnService
from app.services.sync import (
    CatalogSyncService,
    FileKind,
    SyncScheduler,
    classify,
    derive_display_name,
    translate_name,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(sync_default_product_price=100, sync_default_location_price=150)


class TestNames:
    @pytest.mark.parametrize("file_name, expected", [
        ("kibbeh_fried.png", "kibbeh fried"),
        ("kibbeh_fried-1712345678.png", "kibbeh fried"),
        ("grape-leaves-oil_3.jpg", "grape leaves oil"),
        ("kibbeh.fried.png", "kibbeh fried"),
        ("kibbeh.fried.1712345678.png", "kibbeh fried"),
        ("Shishbarak 2.webp", "Shishbarak"),
        ("2024.png", "2024"),
        ("mansaf", "mansaf"),
    ])
    def test_derive_display_name(self, file_name, expected):
        assert derive_display_name(file_name) == expected

    def test_translate_known_names(self):
        assert translate_name("kibbeh fried") == "كبة مقلية"
        assert translate_name("Shishbarak") == "ششبرك لحمة"
        assert translate_name("main dishes") == "أطباق رئيسية"

    def test_unknown_name_passes_through(self):
        assert translate_name("mansaf") == "mansaf"

    @pytest.mark.parametrize("file_path, kind", [
        ("/categories/desserts.png", FileKind.CATEGORY),
        ("/Categories/desserts.png", FileKind.CATEGORY),
        ("/locations/abdoun.jpg", FileKind.LOCATION),
        ("/delivery-locations/abdoun.jpg", FileKind.LOCATION),
        ("/delivery/abdoun.jpg", FileKind.LOCATION),
        ("/products/kibbeh_fried.png", FileKind.PRODUCT),
        ("/kibbeh_fried.png", FileKind.PRODUCT),
        ("/products/categories.png", FileKind.PRODUCT),
    ])
    def test_classify_by_folder(self, file_path, kind):
        assert classify(file_path) is kind


class TestRunOnce:
    async def test_first_pass_imports_everything(self, storage, cdn, settings):
        cdn.add_folder("products")
        cdn.add_file("kibbeh_fried.png", "/products")
        cdn.add_file("sambousa_cheese_2.png", "/products")
        cdn.add_file("desserts.png", "/categories")
        cdn.add_file("abdoun.jpg", "/locations")

        report = await CatalogSyncService(storage, cdn, settings).run_once()

        assert report.success
        assert report.total_files == 5
        assert report.new_products_added == 2
        # default category plus the one from /categories
        assert report.new_categories_added == 2
        assert report.new_locations_added == 1
        assert report.skipped == 1

        products = await storage.get_products()
        assert {p.name for p in products} == {"كبة مقلية", "سمبوسك جبنة"}
        assert all(p.price == 100 and p.description == "" and not p.is_popular for p in products)

        default = await storage.get_category_by_slug("appetizers")
        assert default.name == "مقبلات"
        assert {p.category_id for p in products} == {default.id}

        dessert = await storage.get_category_by_slug("desserts")
        assert dessert.name == "حلويات"
        assert dessert.image == f"{MockCdnService.URL_ENDPOINT}/categories/desserts.png"

        [location] = await storage.get_delivery_locations()
        assert (location.name, location.price) == ("abdoun", 150)

    async def test_second_pass_adds_nothing(self, storage, cdn, settings):
        cdn.add_file("kibbeh_fried.png")
        cdn.add_file("abdoun.jpg", "/locations")
        service = CatalogSyncService(storage, cdn, settings)

        await service.run_once()
        report = await service.run_once()

        assert report.total_added == 0
        assert report.skipped == 2
        assert len(await storage.get_products()) == 1
        assert len(await storage.get_delivery_locations()) == 1

    async def test_only_unseen_files_are_recorded(self, storage, cdn, settings):
        seen = [cdn.add_file(f"seen_{i}.png", file_id=f"seen-{i}") for i in range(3)]
        for remote in seen:
            await storage.claim_synced_image(SyncedImageCreate(
                file_id=remote.file_id, file_name=remote.name, url=remote.url
            ))
        for i in range(4):
            cdn.add_file(f"new_{i}.png", file_id=f"new-{i}")

        report = await CatalogSyncService(storage, cdn, settings).run_once()

        assert report.new_products_added == 4
        assert len(await storage.get_synced_images()) == 7

    async def test_existing_category_is_the_default(self, storage, cdn, settings):
        existing = await storage.create_category(
            CategoryCreate(name="عروض", slug="specials", image="/images/hero1.png")
        )
        cdn.add_file("kibbeh_fried.png")

        report = await CatalogSyncService(storage, cdn, settings).run_once()

        assert report.new_categories_added == 0
        [product] = await storage.get_products()
        assert product.category_id == existing.id

    async def test_product_with_same_url_is_not_duplicated(self, storage, cdn, settings):
        remote = cdn.add_file("kibbeh_fried.png", file_id="reuploaded")
        await storage.create_product(ProductCreate(name="كبة", price=500, image=remote.url))

        report = await CatalogSyncService(storage, cdn, settings).run_once()

        assert report.new_products_added == 0
        assert report.skipped == 1
        assert len(await storage.get_products()) == 1

    async def test_category_slug_collision_gets_suffix(self, storage, cdn, settings):
        cdn.add_file("appetizers.png", "/categories", file_id="abc123")

        report = await CatalogSyncService(storage, cdn, settings).run_once()

        assert report.new_categories_added == 2
        slugs = {c.slug for c in await storage.get_categories()}
        assert slugs == {"appetizers", "appetizers-abc123"}

    async def test_listing_failure_propagates(self, storage, settings):
        cdn = MockCdnService(failure_rate=1.0)
        cdn.add_file("kibbeh_fried.png")

        with pytest.raises(CdnError):
            await CatalogSyncService(storage, cdn, settings).run_once()

        assert await storage.get_synced_images() == []

    async def test_concurrent_passes_import_each_file_once(self, mem_storage, cdn, settings):
        for i in range(5):
            cdn.add_file(f"dish_{i}.png", file_id=f"dish-{i}")
        await mem_storage.create_category(
            CategoryCreate(name="مقبلات", slug="appetizers", image="/images/hero1.png")
        )
        service = CatalogSyncService(mem_storage, cdn, settings)

        reports = await asyncio.gather(service.run_once(), service.run_once())

        assert sum(r.new_products_added for r in reports) == 5
        assert len(await mem_storage.get_products()) == 5


class BlockingSync:
    """Sync stand-in whose pass waits until released."""

    def __init__(self):
        self.release = asyncio.Event()
        self.started = asyncio.Event()
        self.calls = 0

    async def run_once(self) -> SyncReport:
        self.calls += 1
        self.started.set()
        await self.release.wait()
        return SyncReport(new_products_added=1)


class FailingSync:
    async def run_once(self) -> SyncReport:
        raise CdnError("listing failed")


class TestScheduler:
    async def test_tick_skipped_while_in_flight(self):
        sync = BlockingSync()
        scheduler = SyncScheduler(sync, interval_seconds=60)

        first = asyncio.create_task(scheduler.tick())
        await sync.started.wait()

        assert scheduler.in_flight
        assert await scheduler.tick() is None
        assert scheduler.skipped_ticks == 1

        sync.release.set()
        report = await first

        assert report.new_products_added == 1
        assert scheduler.last_report is report
        assert not scheduler.in_flight
        assert sync.calls == 1

    async def test_trigger_honors_in_flight_flag(self):
        sync = BlockingSync()
        scheduler = SyncScheduler(sync, interval_seconds=60)

        first = asyncio.create_task(scheduler.trigger())
        await sync.started.wait()
        assert await scheduler.trigger() is None

        sync.release.set()
        assert (await first).new_products_added == 1
        assert sync.calls == 1

    async def test_failed_pass_clears_flag(self):
        scheduler = SyncScheduler(FailingSync(), interval_seconds=60)

        assert await scheduler.tick() is None
        assert not scheduler.in_flight
        assert scheduler.last_report is None

    async def test_stop_waits_for_in_flight_pass(self):
        sync = BlockingSync()
        scheduler = SyncScheduler(sync, interval_seconds=60)

        scheduler.start()
        await sync.started.wait()
        assert scheduler.is_running

        stopping = asyncio.create_task(scheduler.stop())
        await asyncio.sleep(0)
        assert not stopping.done()

        sync.release.set()
        await stopping

        assert not scheduler.is_running
        assert scheduler.last_report is not None
        assert sync.calls == 1
