"""
SQLAlchemy Database Models

Catalog tables for the storefront:
- Categories and products (product category is optional)
- Delivery locations selected at checkout
- Synced image ledger used by the CDN import job
- Offers (promotional bundles) shown on their own page

All prices are integers in minor currency units (hundredths).

Author: Khalil Bannouri
Version: 1.0.0
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import func
from app.database import Base
import enum


class UnitType(str, enum.Enum):
    """Pricing denomination of a product."""
    PIECE = "piece"
    DOZEN = "dozen"
    KILO = "kilo"

    @property
    def label(self) -> str:
        """Arabic display label."""
        return UNIT_LABELS[self]

    @property
    def step(self) -> float:
        """Cart quantity increment for this unit."""
        return 0.5 if self is UnitType.KILO else 1


UNIT_LABELS = {
    UnitType.PIECE: "حبة",
    UnitType.DOZEN: "دزينة",
    UnitType.KILO: "كيلو",
}


class Category(Base):
    """Product category shown as a tab on the storefront."""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(Text, nullable=False)
    slug = Column(String(120), nullable=False, unique=True, index=True)
    image = Column(Text, nullable=False)

    def __repr__(self):
        return f"<Category #{self.id} - {self.slug}>"


class Product(Base):
    """
    Catalog product.

    Products may be uncategorized (category_id is NULL). The unit type
    decides the cart quantity step.
    """
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    category_id = Column(
        Integer,
        ForeignKey("categories.id"),
        nullable=True,
        index=True,
    )
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Integer, nullable=False)
    unit_type = Column(String(20), nullable=False, default=UnitType.PIECE.value)
    image = Column(Text, nullable=False, index=True)
    is_popular = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<Product #{self.id} - {self.name} - {self.price}>"


class DeliveryLocation(Base):
    """Delivery zone with a flat delivery fee."""
    __tablename__ = "delivery_locations"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_delivery_locations_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(Text, nullable=False)
    price = Column(Integer, nullable=False)
    image = Column(Text, nullable=False)

    def __repr__(self):
        return f"<DeliveryLocation #{self.id} - {self.name}>"


class SyncedImage(Base):
    """
    Ledger of remote CDN files already imported.

    Rows are only ever inserted. The unique file_id is what makes the
    sync claim atomic.
    """
    __tablename__ = "synced_images"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    file_id = Column(String(100), nullable=False, unique=True, index=True)
    file_name = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    synced_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<SyncedImage {self.file_id}>"


class Offer(Base):
    """
    Promotional bundle shown on the offers page.

    original_price is optional; when present the card shows it struck
    through next to the discounted price.
    """
    __tablename__ = "offers"
    __table_args__ = (
        CheckConstraint("discounted_price >= 0", name="ck_offers_discounted_price_non_negative"),
        CheckConstraint("original_price >= 0", name="ck_offers_original_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    original_price = Column(Integer, nullable=True)
    discounted_price = Column(Integer, nullable=False)
    image = Column(Text, nullable=False)

    def __repr__(self):
        return f"<Offer #{self.id} - {self.title}>"
