"""
In-Memory Catalog Storage

Process-local implementation of the catalog store. Selected when no
DATABASE_URL is configured or the database is unreachable at startup.
Data lives only as long as the process.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from app.models import UnitType
from app.schemas import (
    Category,
    CategoryCreate,
    DeliveryLocation,
    DeliveryLocationCreate,
    Offer,
    OfferCreate,
    Product,
    ProductCreate,
    SyncedImage,
    SyncedImageCreate,
)
from app.services.storage.base import BaseStorage, DuplicateSlugError

logger = logging.getLogger(__name__)


class MemStorage(BaseStorage):
    """
    Dictionary-backed catalog store.

    Ids are assigned from per-table counters starting at 1 and are never
    reused after deletion, matching a serial primary key.
    """

    def __init__(self):
        self._categories: dict[int, Category] = {}
        self._products: dict[int, Product] = {}
        self._locations: dict[int, DeliveryLocation] = {}
        self._offers: dict[int, Offer] = {}
        self._synced: dict[str, SyncedImage] = {}
        self._next_ids = {
            "categories": 1,
            "products": 1,
            "delivery_locations": 1,
            "offers": 1,
            "synced_images": 1,
        }

        logger.info("MemStorage initialized")

    @property
    def provider_name(self) -> str:
        return "memory"

    def _next_id(self, table: str) -> int:
        value = self._next_ids[table]
        self._next_ids[table] = value + 1
        return value

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def get_categories(self) -> list[Category]:
        return list(self._categories.values())

    async def get_category(self, category_id: int) -> Optional[Category]:
        return self._categories.get(category_id)

    async def get_category_by_slug(self, slug: str) -> Optional[Category]:
        return next((c for c in self._categories.values() if c.slug == slug), None)

    async def create_category(self, data: CategoryCreate) -> Category:
        if await self.get_category_by_slug(data.slug):
            raise DuplicateSlugError(data.slug)
        category = Category(id=self._next_id("categories"), **data.model_dump())
        self._categories[category.id] = category
        return category

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    async def get_products(
        self,
        category_id: Optional[int] = None,
        is_popular: Optional[bool] = None,
    ) -> list[Product]:
        products = list(self._products.values())
        if category_id is not None:
            products = [p for p in products if p.category_id == category_id]
        if is_popular:
            products = [p for p in products if p.is_popular]
        return products

    async def get_product(self, product_id: int) -> Optional[Product]:
        return self._products.get(product_id)

    async def get_product_by_image(self, url: str) -> Optional[Product]:
        return next((p for p in self._products.values() if p.image == url), None)

    async def create_product(self, data: ProductCreate) -> Product:
        product = Product(id=self._next_id("products"), **data.model_dump())
        self._products[product.id] = product
        return product

    async def update_product_price(
        self,
        product_id: int,
        price: Optional[int] = None,
        unit_type: Optional[UnitType] = None,
        name: Optional[str] = None,
    ) -> Optional[Product]:
        product = self._products.get(product_id)
        if product is None:
            return None

        changes = {}
        if price is not None:
            changes["price"] = price
        if unit_type is not None:
            changes["unit_type"] = unit_type
        if name:
            changes["name"] = name

        updated = product.model_copy(update=changes)
        self._products[product_id] = updated
        return updated

    async def delete_product(self, product_id: int) -> bool:
        return self._products.pop(product_id, None) is not None

    # =========================================================================
    # DELIVERY LOCATIONS
    # =========================================================================

    async def get_delivery_locations(self) -> list[DeliveryLocation]:
        return list(self._locations.values())

    async def get_delivery_location(self, location_id: int) -> Optional[DeliveryLocation]:
        return self._locations.get(location_id)

    async def create_delivery_location(self, data: DeliveryLocationCreate) -> DeliveryLocation:
        location = DeliveryLocation(id=self._next_id("delivery_locations"), **data.model_dump())
        self._locations[location.id] = location
        return location

    async def delete_delivery_location(self, location_id: int) -> bool:
        return self._locations.pop(location_id, None) is not None

    # =========================================================================
    # OFFERS
    # =========================================================================

    async def get_offers(self) -> list[Offer]:
        return list(self._offers.values())

    async def create_offer(self, data: OfferCreate) -> Offer:
        offer = Offer(id=self._next_id("offers"), **data.model_dump())
        self._offers[offer.id] = offer
        return offer

    # =========================================================================
    # SYNCED IMAGE LEDGER
    # =========================================================================

    async def get_synced_images(self) -> list[SyncedImage]:
        return list(self._synced.values())

    async def get_synced_image_by_file_id(self, file_id: str) -> Optional[SyncedImage]:
        return self._synced.get(file_id)

    async def claim_synced_image(self, data: SyncedImageCreate) -> bool:
        # No await between the check and the insert, so this is atomic
        # with respect to other coroutines on the same loop.
        if data.file_id in self._synced:
            return False

        fields = data.model_dump()
        fields["synced_at"] = data.synced_at or datetime.now(timezone.utc)
        self._synced[data.file_id] = SyncedImage(id=self._next_id("synced_images"), **fields)
        return True

    async def health_check(self) -> bool:
        return True
