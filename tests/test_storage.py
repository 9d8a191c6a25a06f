import pytest

from app.models import UnitType
from app.schemas import (
    CategoryCreate,
    DeliveryLocationCreate,
    OfferCreate,
    ProductCreate,
    SyncedImageCreate,
)
from app.seed import SAMPLE_CATEGORIES, SAMPLE_OFFERS, SAMPLE_PRODUCTS, seed_catalog
from app.services.storage import (
    DatabaseStorage,
    DuplicateSlugError,
    MemStorage,
    get_storage,
    initialize_storage,
    reset_storage,
)


def category(slug="appetizers", name="مقبلات"):
    return CategoryCreate(name=name, slug=slug, image="/images/hero1.png")


def product(name="كبة مقلية", price=500, **extra):
    return ProductCreate(name=name, price=price, image=extra.pop("image", f"/images/{name}.png"), **extra)


class TestCategories:
    async def test_create_and_read(self, storage):
        created = await storage.create_category(category())

        assert created.id >= 1
        assert await storage.get_category(created.id) == created
        assert await storage.get_category_by_slug("appetizers") == created
        assert await storage.get_categories() == [created]

    async def test_missing_category(self, storage):
        assert await storage.get_category(999) is None
        assert await storage.get_category_by_slug("nope") is None

    async def test_duplicate_slug_rejected(self, storage):
        await storage.create_category(category())

        with pytest.raises(DuplicateSlugError) as exc:
            await storage.create_category(category(name="أخرى"))

        assert exc.value.slug == "appetizers"
        assert len(await storage.get_categories()) == 1


class TestProducts:
    async def test_create_defaults(self, storage):
        created = await storage.create_product(product())

        assert created.description == ""
        assert created.unit_type == UnitType.PIECE
        assert created.is_popular is False
        assert created.category_id is None

    async def test_filters(self, storage):
        first = await storage.create_category(category())
        second = await storage.create_category(category("desserts", "حلويات"))
        kibbeh = await storage.create_product(product(category_id=first.id, is_popular=True))
        await storage.create_product(product("سمبوسة", 300, category_id=first.id))
        await storage.create_product(product("كنافة", 800, category_id=second.id, is_popular=True))

        assert len(await storage.get_products()) == 3
        assert len(await storage.get_products(category_id=first.id)) == 2
        assert len(await storage.get_products(is_popular=True)) == 2
        assert len(await storage.get_products(is_popular=False)) == 3
        assert await storage.get_products(category_id=first.id, is_popular=True) == [kibbeh]

    async def test_get_by_image(self, storage):
        created = await storage.create_product(product(image="https://ik.imagekit.io/mock/products/a.jpg"))

        assert await storage.get_product_by_image("https://ik.imagekit.io/mock/products/a.jpg") == created
        assert await storage.get_product_by_image("https://ik.imagekit.io/mock/products/b.jpg") is None

    async def test_update_price_only(self, storage):
        created = await storage.create_product(product(unit_type=UnitType.DOZEN))

        updated = await storage.update_product_price(created.id, price=650)

        assert updated.price == 650
        assert updated.unit_type == UnitType.DOZEN
        assert updated.name == created.name
        assert await storage.get_product(created.id) == updated

    async def test_update_unit_and_name(self, storage):
        created = await storage.create_product(product())

        updated = await storage.update_product_price(
            created.id, price=900, unit_type=UnitType.KILO, name="كبة مشوية"
        )

        assert (updated.price, updated.unit_type, updated.name) == (900, UnitType.KILO, "كبة مشوية")

    async def test_update_missing_product(self, storage):
        assert await storage.update_product_price(42, price=100) is None

    async def test_delete(self, storage):
        created = await storage.create_product(product())

        assert await storage.delete_product(created.id) is True
        assert await storage.get_product(created.id) is None
        assert created.id not in [p.id for p in await storage.get_products()]
        assert await storage.delete_product(created.id) is False


class TestDeliveryLocations:
    async def test_crud(self, storage):
        created = await storage.create_delivery_location(
            DeliveryLocationCreate(name="عبدون", price=250, image="/images/abdoun.png")
        )

        assert await storage.get_delivery_locations() == [created]
        assert await storage.get_delivery_location(created.id) == created
        assert await storage.delete_delivery_location(created.id) is True
        assert await storage.delete_delivery_location(created.id) is False
        assert await storage.get_delivery_locations() == []


class TestOffers:
    async def test_create_and_list(self, storage):
        family = await storage.create_offer(OfferCreate(
            title="عرض العائلة", original_price=3000, discounted_price=2500, image="/images/hero2.png",
        ))
        friday = await storage.create_offer(OfferCreate(
            title="عرض الجمعة", discounted_price=800, image="/images/hero1.png",
        ))

        assert await storage.get_offers() == [family, friday]
        assert friday.original_price is None
        assert friday.description == ""

    async def test_seed_offers_only_when_empty(self, storage):
        await storage.create_offer(OfferCreate(title="خاص", discounted_price=100, image="/x.png"))

        await storage.seed_offers(SAMPLE_OFFERS)

        assert [o.title for o in await storage.get_offers()] == ["خاص"]


class TestSyncedImageLedger:
    async def test_claim_is_once_per_file(self, storage):
        entry = SyncedImageCreate(file_id="f1", file_name="kibbeh.jpg", url="https://cdn/kibbeh.jpg")

        assert await storage.claim_synced_image(entry) is True
        assert await storage.claim_synced_image(entry) is False

        ledger = await storage.get_synced_images()
        assert [image.file_id for image in ledger] == ["f1"]
        assert ledger[0].synced_at is not None
        assert (await storage.get_synced_image_by_file_id("f1")).url == "https://cdn/kibbeh.jpg"
        assert await storage.get_synced_image_by_file_id("f2") is None


class TestSeeding:
    async def test_seed_only_when_empty(self, storage):
        await seed_catalog(storage)
        await seed_catalog(storage)

        assert len(await storage.get_categories()) == len(SAMPLE_CATEGORIES)
        assert len(await storage.get_products()) == len(SAMPLE_PRODUCTS)
        assert len(await storage.get_offers()) == len(SAMPLE_OFFERS)

    async def test_seed_skips_non_empty_tables(self, storage):
        await storage.create_category(category("custom", "خاص"))

        await storage.seed_categories([category()])

        assert [c.slug for c in await storage.get_categories()] == ["custom"]

    async def test_health(self, storage):
        assert await storage.health_check() is True


class TestSelection:
    async def test_no_engine_selects_memory(self):
        try:
            selected = await initialize_storage()
            assert isinstance(selected, MemStorage)
            assert get_storage() is selected
        finally:
            reset_storage()

    async def test_reachable_engine_selects_database(self, db_engine):
        try:
            selected = await initialize_storage(db_engine)
            assert isinstance(selected, DatabaseStorage)
            assert selected.provider_name == "database"
        finally:
            reset_storage()

    async def test_unreachable_engine_falls_back(self, tmp_path):
        from app.database import create_engine_for

        engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'catalog.db'}")
        try:
            selected = await initialize_storage(engine)
            assert isinstance(selected, MemStorage)
        finally:
            reset_storage()
            await engine.dispose()

    def test_get_storage_without_initialization(self):
        reset_storage()
        try:
            assert get_storage().provider_name == "memory"
        finally:
            reset_storage()
