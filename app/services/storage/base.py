"""
Catalog Storage Abstract Base Class

Defines the interface contract for both catalog store implementations.
MemStorage and DatabaseStorage must behave identically so that the
rest of the application never cares which one was selected at startup.

Design Pattern: Strategy Pattern
    - One variant chosen once at process start
    - Route handlers and the sync job only see BaseStorage

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

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
from app.models import UnitType


class DuplicateSlugError(ValueError):
    """Raised when a category slug is already taken."""

    def __init__(self, slug: str):
        super().__init__(f"Category slug already exists: {slug}")
        self.slug = slug


class BaseStorage(ABC):
    """
    Abstract base class for catalog stores.

    All reads return pydantic schema objects, never ORM rows, so callers
    can hold on to them after the session is gone.

    Example:
        >>> storage = get_storage()
        >>> popular = await storage.get_products(is_popular=True)
        >>> removed = await storage.delete_product(popular[0].id)
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """
        Return the name of the store variant.

        Returns:
            str: "memory" or "database"
        """
        pass

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    @abstractmethod
    async def get_categories(self) -> list[Category]:
        pass

    @abstractmethod
    async def get_category(self, category_id: int) -> Optional[Category]:
        pass

    @abstractmethod
    async def get_category_by_slug(self, slug: str) -> Optional[Category]:
        pass

    @abstractmethod
    async def create_category(self, data: CategoryCreate) -> Category:
        pass

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    @abstractmethod
    async def get_products(
        self,
        category_id: Optional[int] = None,
        is_popular: Optional[bool] = None,
    ) -> list[Product]:
        """
        List products, optionally filtered.

        Args:
            category_id: Only products in this category
            is_popular: When True, only popular products. False or None
                means no popularity filter.
        """
        pass

    @abstractmethod
    async def get_product(self, product_id: int) -> Optional[Product]:
        pass

    @abstractmethod
    async def get_product_by_image(self, url: str) -> Optional[Product]:
        """Find a product whose image is exactly this URL."""
        pass

    @abstractmethod
    async def create_product(self, data: ProductCreate) -> Product:
        pass

    @abstractmethod
    async def update_product_price(
        self,
        product_id: int,
        price: Optional[int] = None,
        unit_type: Optional[UnitType] = None,
        name: Optional[str] = None,
    ) -> Optional[Product]:
        """
        Update price, unit type and/or name of a product.

        Fields left as None keep their current value.

        Returns:
            The updated product, or None if it does not exist
        """
        pass

    @abstractmethod
    async def delete_product(self, product_id: int) -> bool:
        """Returns True if a row was deleted."""
        pass

    # =========================================================================
    # DELIVERY LOCATIONS
    # =========================================================================

    @abstractmethod
    async def get_delivery_locations(self) -> list[DeliveryLocation]:
        pass

    @abstractmethod
    async def get_delivery_location(self, location_id: int) -> Optional[DeliveryLocation]:
        pass

    @abstractmethod
    async def create_delivery_location(self, data: DeliveryLocationCreate) -> DeliveryLocation:
        pass

    @abstractmethod
    async def delete_delivery_location(self, location_id: int) -> bool:
        """Returns True if a row was deleted."""
        pass

    # =========================================================================
    # OFFERS
    # =========================================================================

    @abstractmethod
    async def get_offers(self) -> list[Offer]:
        pass

    @abstractmethod
    async def create_offer(self, data: OfferCreate) -> Offer:
        pass

    # =========================================================================
    # SYNCED IMAGE LEDGER
    # =========================================================================

    @abstractmethod
    async def get_synced_images(self) -> list[SyncedImage]:
        pass

    @abstractmethod
    async def get_synced_image_by_file_id(self, file_id: str) -> Optional[SyncedImage]:
        pass

    @abstractmethod
    async def claim_synced_image(self, data: SyncedImageCreate) -> bool:
        """
        Record a remote file in the ledger unless it is already there.

        The check and the insert are a single atomic step keyed on
        file_id, so two overlapping sync passes cannot both claim the
        same file.

        Returns:
            True if this call created the ledger row, False if the
            file was already recorded
        """
        pass

    # =========================================================================
    # SEEDING & HEALTH
    # =========================================================================

    async def seed_categories(self, data: Iterable[CategoryCreate]) -> None:
        """Insert the given categories only when there are none yet."""
        if await self.get_categories():
            return
        for category in data:
            await self.create_category(category)

    async def seed_products(self, data: Iterable[ProductCreate]) -> None:
        """Insert the given products only when there are none yet."""
        if await self.get_products():
            return
        for product in data:
            await self.create_product(product)

    async def seed_offers(self, data: Iterable[OfferCreate]) -> None:
        """Insert the given offers only when there are none yet."""
        if await self.get_offers():
            return
        for offer in data:
            await self.create_offer(offer)

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Verify the store is usable.

        Returns:
            bool: True if reads succeed
        """
        pass
