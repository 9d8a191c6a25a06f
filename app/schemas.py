"""
Pydantic Schemas for Request/Response Validation

Catalog payloads use camelCase on the wire (categoryId, unitType,
isPopular) and also accept snake_case field names on input.
Money is always an integer number of minor units.

Author: Khalil Bannouri
Version: 1.0.0
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List
from datetime import datetime
from enum import Enum

from app.models import UnitType


class CamelModel(BaseModel):
    """Base for API models: camelCase aliases, ORM attribute loading."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# ENUMS
# =============================================================================

class FulfillmentEnum(str, Enum):
    TAKEAWAY = "takeaway"
    DELIVERY = "delivery"


# =============================================================================
# CATALOG SCHEMAS
# =============================================================================

class CategoryCreate(CamelModel):
    """Request schema for creating a category."""
    name: str = Field(..., min_length=1, examples=["مقبلات"])
    slug: str = Field(..., min_length=1, max_length=120, pattern=r"^[a-z0-9-]+$", examples=["appetizers"])
    image: str = Field(..., min_length=1, examples=["/images/hero1.png"])


class Category(CategoryCreate):
    """Category as returned by the API."""
    id: int


class ProductCreate(CamelModel):
    """Request schema for creating a product."""
    category_id: Optional[int] = Field(None, examples=[1])
    name: str = Field(..., min_length=1, examples=["كبة مقلية"])
    description: str = Field(default="", examples=["كبة محشوة باللحم والصنوبر"])
    price: int = Field(..., ge=0, examples=[500])
    unit_type: UnitType = Field(default=UnitType.PIECE, examples=["piece"])
    image: str = Field(..., min_length=1, examples=["/images/hero2.png"])
    is_popular: bool = Field(default=False)


class Product(ProductCreate):
    """Product as returned by the API."""
    id: int


class ProductPriceUpdate(CamelModel):
    """Admin price edit; unit type and name may be changed alongside."""
    price: int = Field(..., ge=0, examples=[650])
    unit_type: Optional[UnitType] = Field(None, examples=["kilo"])
    name: Optional[str] = Field(None, min_length=1)


class DeliveryLocationCreate(CamelModel):
    """Request schema for creating a delivery location."""
    name: str = Field(..., min_length=1, examples=["عبدون"])
    price: int = Field(..., ge=0, examples=[250])
    image: str = Field(..., min_length=1)


class DeliveryLocation(DeliveryLocationCreate):
    """Delivery location as returned by the API."""
    id: int


class OfferCreate(CamelModel):
    """Request schema for creating an offer."""
    title: str = Field(..., min_length=1, examples=["عرض العائلة"])
    description: str = Field(default="", examples=["خصم 20% على جميع المقبلات"])
    original_price: Optional[int] = Field(None, ge=0, examples=[3000])
    discounted_price: int = Field(..., ge=0, examples=[2500])
    image: str = Field(..., min_length=1, examples=["/images/hero2.png"])


class Offer(OfferCreate):
    """Offer as returned by the API."""
    id: int


class SyncedImageCreate(CamelModel):
    """Ledger entry for an imported CDN file."""
    file_id: str
    file_name: str
    url: str
    synced_at: Optional[datetime] = None


class SyncedImage(SyncedImageCreate):
    id: int


# =============================================================================
# IMAGE CDN SCHEMAS
# =============================================================================

class CdnAuthResponse(CamelModel):
    """Signed credentials for a direct browser-to-CDN upload."""
    token: str
    expire: int
    signature: str
    public_key: str
    url_endpoint: str


class SyncReport(CamelModel):
    """Outcome of one CDN sync pass."""
    success: bool = True
    new_products_added: int = 0
    new_categories_added: int = 0
    new_locations_added: int = 0
    skipped: int = 0
    total_files: int = 0

    @property
    def total_added(self) -> int:
        return self.new_products_added + self.new_categories_added + self.new_locations_added


# =============================================================================
# CHECKOUT SCHEMAS
# =============================================================================

class CheckoutLine(CamelModel):
    """One cart line sent for message composition."""
    product_id: int
    quantity: float = Field(..., gt=0, examples=[2, 1.5])


class CheckoutRequest(CamelModel):
    """Cart contents plus an optional delivery location."""
    items: List[CheckoutLine] = Field(..., min_length=1)
    delivery_location_id: Optional[int] = None


class CheckoutResponse(CamelModel):
    """Composed WhatsApp hand-off. Nothing is stored server-side."""
    fulfillment: FulfillmentEnum
    message: str
    url: str
    subtotal: float
    delivery_price: Optional[int] = None
    total: float


# =============================================================================
# GENERIC RESPONSES
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    storage: str
    storage_provider: str
    redis: str
    cdn_provider: str
    timestamp: datetime
