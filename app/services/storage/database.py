"""
Relational Catalog Storage

SQLAlchemy async implementation of the catalog store. Used when
DATABASE_URL is configured and reachable at startup (PostgreSQL in
production, SQLite in tests).

Each operation opens its own short-lived session; there are no
multi-statement transactions spanning several catalog writes.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from app import models, schemas
from app.database import create_session_maker
from app.models import UnitType
from app.services.storage.base import BaseStorage, DuplicateSlugError

logger = logging.getLogger(__name__)


class DatabaseStorage(BaseStorage):
    """
    Catalog store backed by SQLAlchemy tables.

    Example:
        >>> storage = DatabaseStorage(engine)
        >>> await storage.create_category(CategoryCreate(
        ...     name="حلويات", slug="desserts", image="/images/hero1.png"
        ... ))
    """

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._session_maker = create_session_maker(engine)

        logger.info(f"DatabaseStorage initialized ({engine.dialect.name})")

    @property
    def provider_name(self) -> str:
        return "database"

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def get_categories(self) -> list[schemas.Category]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(models.Category).order_by(models.Category.id)
            )
            return [schemas.Category.model_validate(c) for c in result.scalars().all()]

    async def get_category(self, category_id: int) -> Optional[schemas.Category]:
        async with self._session_maker() as session:
            category = await session.get(models.Category, category_id)
            return schemas.Category.model_validate(category) if category else None

    async def get_category_by_slug(self, slug: str) -> Optional[schemas.Category]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(models.Category).where(models.Category.slug == slug)
            )
            category = result.scalar_one_or_none()
            return schemas.Category.model_validate(category) if category else None

    async def create_category(self, data: schemas.CategoryCreate) -> schemas.Category:
        async with self._session_maker() as session:
            category = models.Category(**data.model_dump())
            session.add(category)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise DuplicateSlugError(data.slug)
            await session.refresh(category)
            return schemas.Category.model_validate(category)

    # =========================================================================
    # PRODUCTS
    # =========================================================================

    async def get_products(
        self,
        category_id: Optional[int] = None,
        is_popular: Optional[bool] = None,
    ) -> list[schemas.Product]:
        query = select(models.Product).order_by(models.Product.id)
        if category_id is not None:
            query = query.where(models.Product.category_id == category_id)
        if is_popular:
            query = query.where(models.Product.is_popular.is_(True))

        async with self._session_maker() as session:
            result = await session.execute(query)
            return [schemas.Product.model_validate(p) for p in result.scalars().all()]

    async def get_product(self, product_id: int) -> Optional[schemas.Product]:
        async with self._session_maker() as session:
            product = await session.get(models.Product, product_id)
            return schemas.Product.model_validate(product) if product else None

    async def get_product_by_image(self, url: str) -> Optional[schemas.Product]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(models.Product).where(models.Product.image == url).limit(1)
            )
            product = result.scalar_one_or_none()
            return schemas.Product.model_validate(product) if product else None

    async def create_product(self, data: schemas.ProductCreate) -> schemas.Product:
        fields = data.model_dump()
        fields["unit_type"] = data.unit_type.value

        async with self._session_maker() as session:
            product = models.Product(**fields)
            session.add(product)
            await session.commit()
            await session.refresh(product)
            return schemas.Product.model_validate(product)

    async def update_product_price(
        self,
        product_id: int,
        price: Optional[int] = None,
        unit_type: Optional[UnitType] = None,
        name: Optional[str] = None,
    ) -> Optional[schemas.Product]:
        async with self._session_maker() as session:
            product = await session.get(models.Product, product_id)
            if product is None:
                return None

            if price is not None:
                product.price = price
            if unit_type is not None:
                product.unit_type = UnitType(unit_type).value
            if name:
                product.name = name

            await session.commit()
            await session.refresh(product)
            return schemas.Product.model_validate(product)

    async def delete_product(self, product_id: int) -> bool:
        async with self._session_maker() as session:
            result = await session.execute(
                delete(models.Product).where(models.Product.id == product_id)
            )
            await session.commit()
            return result.rowcount > 0

    # =========================================================================
    # DELIVERY LOCATIONS
    # =========================================================================

    async def get_delivery_locations(self) -> list[schemas.DeliveryLocation]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(models.DeliveryLocation).order_by(models.DeliveryLocation.id)
            )
            return [
                schemas.DeliveryLocation.model_validate(loc)
                for loc in result.scalars().all()
            ]

    async def get_delivery_location(self, location_id: int) -> Optional[schemas.DeliveryLocation]:
        async with self._session_maker() as session:
            location = await session.get(models.DeliveryLocation, location_id)
            return schemas.DeliveryLocation.model_validate(location) if location else None

    async def create_delivery_location(
        self,
        data: schemas.DeliveryLocationCreate,
    ) -> schemas.DeliveryLocation:
        async with self._session_maker() as session:
            location = models.DeliveryLocation(**data.model_dump())
            session.add(location)
            await session.commit()
            await session.refresh(location)
            return schemas.DeliveryLocation.model_validate(location)

    async def delete_delivery_location(self, location_id: int) -> bool:
        async with self._session_maker() as session:
            result = await session.execute(
                delete(models.DeliveryLocation).where(models.DeliveryLocation.id == location_id)
            )
            await session.commit()
            return result.rowcount > 0

    # =========================================================================
    # OFFERS
    # =========================================================================

    async def get_offers(self) -> list[schemas.Offer]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(models.Offer).order_by(models.Offer.id)
            )
            return [schemas.Offer.model_validate(o) for o in result.scalars().all()]

    async def create_offer(self, data: schemas.OfferCreate) -> schemas.Offer:
        async with self._session_maker() as session:
            offer = models.Offer(**data.model_dump())
            session.add(offer)
            await session.commit()
            await session.refresh(offer)
            return schemas.Offer.model_validate(offer)

    # =========================================================================
    # SYNCED IMAGE LEDGER
    # =========================================================================

    async def get_synced_images(self) -> list[schemas.SyncedImage]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(models.SyncedImage).order_by(models.SyncedImage.id)
            )
            return [schemas.SyncedImage.model_validate(s) for s in result.scalars().all()]

    async def get_synced_image_by_file_id(self, file_id: str) -> Optional[schemas.SyncedImage]:
        async with self._session_maker() as session:
            result = await session.execute(
                select(models.SyncedImage).where(models.SyncedImage.file_id == file_id)
            )
            synced = result.scalar_one_or_none()
            return schemas.SyncedImage.model_validate(synced) if synced else None

    async def claim_synced_image(self, data: schemas.SyncedImageCreate) -> bool:
        # The unique constraint on file_id arbitrates between racing passes
        async with self._session_maker() as session:
            session.add(models.SyncedImage(
                file_id=data.file_id,
                file_name=data.file_name,
                url=data.url,
                synced_at=data.synced_at or datetime.now(timezone.utc),
            ))
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                logger.debug(f"Ledger already has file {data.file_id}")
                return False
            return True

    async def health_check(self) -> bool:
        try:
            async with self._session_maker() as session:
                await session.execute(select(models.Category.id).limit(1))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False
