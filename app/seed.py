"""
Sample catalog used to populate an empty store on startup.
"""

import logging

from app.models import UnitType
from app.schemas import CategoryCreate, OfferCreate, ProductCreate
from app.services.storage.base import BaseStorage

logger = logging.getLogger(__name__)

SAMPLE_CATEGORIES = [
    CategoryCreate(name="مقبلات", slug="appetizers", image="/images/hero1.png"),
    CategoryCreate(name="أطباق رئيسية", slug="main-dishes", image="/images/hero2.png"),
    CategoryCreate(name="حلويات", slug="desserts", image="/images/hero1.png"),
]

# (category slug, product fields)
SAMPLE_PRODUCTS = [
    ("appetizers", dict(
        name="كبة مقلية",
        description="كبة محشوة باللحم والصنوبر مقلية ومقرمشة",
        price=500,
        image="/images/hero2.png",
        is_popular=True,
    )),
    ("appetizers", dict(
        name="سمبوسة",
        description="سمبوسة هشة بحشوة الجبن أو اللحم",
        price=300,
        image="/images/hero1.png",
        is_popular=True,
    )),
    ("appetizers", dict(
        name="ورق عنب",
        description="ورق عنب بخلطة الأرز والليمون المميزة",
        price=600,
        unit_type=UnitType.KILO,
        image="/images/hero2.png",
        is_popular=True,
    )),
    ("main-dishes", dict(
        name="كبة مشوية",
        description="كبة مشوية على الفحم بنكهة الشواء الأصيلة",
        price=1200,
        unit_type=UnitType.DOZEN,
        image="/images/hero1.png",
        is_popular=True,
    )),
    ("main-dishes", dict(
        name="منسف أردني",
        description="منسف باللحم البلدي والجميد الكركي",
        price=2500,
        image="/images/hero2.png",
    )),
    ("desserts", dict(
        name="كنافة نابلسية",
        description="كنافة بالجبنة الساخنة والقطر",
        price=800,
        unit_type=UnitType.KILO,
        image="/images/hero1.png",
        is_popular=True,
    )),
]


SAMPLE_OFFERS = [
    OfferCreate(
        title="عرض العائلة",
        description="احصل على كيلو كبة مشوية + نصف كيلو ورق عنب بسعر مميز",
        original_price=3000,
        discounted_price=2500,
        image="/images/hero2.png",
    ),
    OfferCreate(
        title="عرض الجمعة",
        description="خصم 20% على جميع المقبلات",
        original_price=1000,
        discounted_price=800,
        image="/images/hero1.png",
    ),
]


async def seed_catalog(storage: BaseStorage) -> None:
    """Insert sample categories, products and offers into empty tables."""
    await storage.seed_categories(SAMPLE_CATEGORIES)
    await storage.seed_offers(SAMPLE_OFFERS)

    categories = await storage.get_categories()
    ids_by_slug = {c.slug: c.id for c in categories}
    if not ids_by_slug:
        return

    await storage.seed_products(
        ProductCreate(category_id=ids_by_slug.get(slug), **fields)
        for slug, fields in SAMPLE_PRODUCTS
    )
    logger.info("🌱 Catalog seeded")
