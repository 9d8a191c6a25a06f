"""
FastAPI Application Entry Point

Restaurant Storefront - catalog API, WhatsApp checkout composition and
ImageKit catalog sync.

Endpoints:
    - GET  /api/categories, /api/categories/{id}     Catalog categories
    - GET  /api/products, /api/products/{id}         Catalog products
    - POST /api/products, /api/categories            Admin creation
    - PATCH /api/products/{id}/price                 Admin price edit
    - DELETE /api/products/{id}                      Admin removal
    - GET/POST/DELETE /api/delivery-locations        Delivery zones
    - GET  /api/offers                               Promotional offers
    - GET  /api/imagekit/auth                        Signed upload credentials
    - POST /api/imagekit/sync                        One CDN sync pass
    - POST /api/checkout/whatsapp                    Compose the order hand-off
    - GET  /health                                   System health check

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import sys
import logging
from datetime import datetime
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import redis

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from app import database, schemas
from app.core.config import get_settings, setup_logging
from app.seed import seed_catalog
from app.services.cart import Cart
from app.services.cdn import (
    BaseCdnService,
    CdnConfigurationError,
    CdnError,
    get_cdn_service,
)
from app.services.checkout import compose_order
from app.services.storage import (
    BaseStorage,
    DuplicateSlugError,
    get_storage,
    initialize_storage,
)
from app.services.sync import CatalogSyncService, SyncScheduler

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

async def _start_sync_scheduler(storage: BaseStorage) -> Optional[SyncScheduler]:
    """Start periodic CDN sync when enabled and configured."""
    if not settings.cdn_sync_enabled:
        return None

    try:
        cdn = get_cdn_service()
    except CdnConfigurationError as e:
        logger.warning(f"⚠️ Periodic image sync disabled: {e}")
        return None

    scheduler = SyncScheduler(
        CatalogSyncService(storage, cdn, settings),
        interval_seconds=settings.cdn_sync_interval_seconds,
    )
    scheduler.start()
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    storage = await initialize_storage()
    logger.info(f"✅ Storage: {storage.provider_name}")

    if settings.seed_on_startup:
        await seed_catalog(storage)

    missing = settings.validate_production_config()
    if missing:
        logger.warning(f"⚠️ Missing production config: {missing}")

    app.state.sync_scheduler = await _start_sync_scheduler(storage)

    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    if app.state.sync_scheduler is not None:
        await app.state.sync_scheduler.stop()
    if database.engine is not None:
        await database.engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Arabic-first restaurant storefront: catalog browsing, admin catalog "
        "management, WhatsApp checkout and ImageKit catalog sync."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍽️ Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=schemas.HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    storage: BaseStorage = Depends(get_storage),
) -> schemas.HealthResponse:
    """Verify all system components are operational."""

    storage_status = "healthy" if await storage.health_check() else "unhealthy"

    # Check Redis
    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
    except Exception as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    overall = "operational" if storage_status == "healthy" else "degraded"

    return schemas.HealthResponse(
        status=overall,
        storage=storage_status,
        storage_provider=storage.provider_name,
        redis=redis_status,
        cdn_provider=settings.cdn_provider.value,
        timestamp=datetime.now(),
    )


# =============================================================================
# CATEGORY ENDPOINTS
# =============================================================================

@app.get(
    "/api/categories",
    response_model=list[schemas.Category],
    tags=["Catalog"],
)
async def list_categories(
    storage: BaseStorage = Depends(get_storage),
) -> list[schemas.Category]:
    return await storage.get_categories()


@app.get(
    "/api/categories/{category_id}",
    response_model=schemas.Category,
    tags=["Catalog"],
)
async def get_category(
    category_id: int,
    storage: BaseStorage = Depends(get_storage),
) -> schemas.Category:
    category = await storage.get_category(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@app.post(
    "/api/categories",
    response_model=schemas.Category,
    status_code=201,
    tags=["Admin"],
)
async def create_category(
    data: schemas.CategoryCreate,
    storage: BaseStorage = Depends(get_storage),
) -> schemas.Category:
    category = await storage.create_category(data)
    logger.info(f"Category #{category.id} created ({category.slug})")
    return category


# =============================================================================
# PRODUCT ENDPOINTS
# =============================================================================

@app.get(
    "/api/products",
    response_model=list[schemas.Product],
    tags=["Catalog"],
)
async def list_products(
    category_id: Optional[int] = Query(None, alias="categoryId"),
    is_popular: Optional[bool] = Query(None, alias="isPopular"),
    storage: BaseStorage = Depends(get_storage),
) -> list[schemas.Product]:
    """List products, optionally by category and/or popular only."""
    return await storage.get_products(category_id=category_id, is_popular=is_popular)


@app.get(
    "/api/products/{product_id}",
    response_model=schemas.Product,
    tags=["Catalog"],
)
async def get_product(
    product_id: int,
    storage: BaseStorage = Depends(get_storage),
) -> schemas.Product:
    product = await storage.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@app.post(
    "/api/products",
    response_model=schemas.Product,
    status_code=201,
    tags=["Admin"],
)
async def create_product(
    data: schemas.ProductCreate,
    storage: BaseStorage = Depends(get_storage),
) -> schemas.Product:
    if data.category_id is not None and not await storage.get_category(data.category_id):
        raise HTTPException(status_code=400, detail="Invalid request")

    product = await storage.create_product(data)
    logger.info(f"Product #{product.id} created ({product.price} minor units)")
    return product


@app.patch(
    "/api/products/{product_id}/price",
    response_model=schemas.Product,
    tags=["Admin"],
)
async def update_product_price(
    product_id: int,
    data: schemas.ProductPriceUpdate,
    storage: BaseStorage = Depends(get_storage),
) -> schemas.Product:
    product = await storage.update_product_price(
        product_id,
        price=data.price,
        unit_type=data.unit_type,
        name=data.name,
    )
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    logger.info(f"Product #{product_id} price set to {product.price}")
    return product


@app.delete(
    "/api/products/{product_id}",
    status_code=204,
    tags=["Admin"],
)
async def delete_product(
    product_id: int,
    storage: BaseStorage = Depends(get_storage),
) -> Response:
    if not await storage.delete_product(product_id):
        raise HTTPException(status_code=404, detail="Product not found")

    logger.info(f"Product #{product_id} deleted")
    return Response(status_code=204)


# =============================================================================
# DELIVERY LOCATION ENDPOINTS
# =============================================================================

@app.get(
    "/api/delivery-locations",
    response_model=list[schemas.DeliveryLocation],
    tags=["Delivery"],
)
async def list_delivery_locations(
    storage: BaseStorage = Depends(get_storage),
) -> list[schemas.DeliveryLocation]:
    return await storage.get_delivery_locations()


@app.post(
    "/api/delivery-locations",
    response_model=schemas.DeliveryLocation,
    status_code=201,
    tags=["Admin"],
)
async def create_delivery_location(
    data: schemas.DeliveryLocationCreate,
    storage: BaseStorage = Depends(get_storage),
) -> schemas.DeliveryLocation:
    location = await storage.create_delivery_location(data)
    logger.info(f"Delivery location #{location.id} created ({location.name})")
    return location


@app.delete(
    "/api/delivery-locations/{location_id}",
    status_code=204,
    tags=["Admin"],
)
async def delete_delivery_location(
    location_id: int,
    storage: BaseStorage = Depends(get_storage),
) -> Response:
    if not await storage.delete_delivery_location(location_id):
        raise HTTPException(status_code=404, detail="Delivery location not found")

    logger.info(f"Delivery location #{location_id} deleted")
    return Response(status_code=204)


# =============================================================================
# OFFER ENDPOINTS
# =============================================================================

@app.get(
    "/api/offers",
    response_model=list[schemas.Offer],
    tags=["Catalog"],
)
async def list_offers(
    storage: BaseStorage = Depends(get_storage),
) -> list[schemas.Offer]:
    return await storage.get_offers()


# =============================================================================
# IMAGEKIT ENDPOINTS
# =============================================================================

@app.get(
    "/api/imagekit/auth",
    response_model=schemas.CdnAuthResponse,
    responses={503: {"model": schemas.ErrorResponse}},
    tags=["ImageKit"],
    summary="Signed credentials for direct uploads",
)
async def imagekit_auth(
    cdn: BaseCdnService = Depends(get_cdn_service),
) -> schemas.CdnAuthResponse:
    params = cdn.get_auth_parameters()
    return schemas.CdnAuthResponse(
        token=params.token,
        expire=params.expire,
        signature=params.signature,
        public_key=params.public_key,
        url_endpoint=params.url_endpoint,
    )


@app.post(
    "/api/imagekit/sync",
    response_model=schemas.SyncReport,
    responses={
        502: {"model": schemas.ErrorResponse},
        503: {"model": schemas.ErrorResponse},
    },
    tags=["ImageKit"],
    summary="Run one CDN sync pass",
)
async def imagekit_sync(
    storage: BaseStorage = Depends(get_storage),
    cdn: BaseCdnService = Depends(get_cdn_service),
) -> schemas.SyncReport:
    """
    Import CDN files not seen before as categories, delivery locations
    or products. Safe to call repeatedly.
    """
    logger.info("Manual image sync requested")
    return await CatalogSyncService(storage, cdn, settings).run_once()


# =============================================================================
# CHECKOUT ENDPOINTS
# =============================================================================

@app.post(
    "/api/checkout/whatsapp",
    response_model=schemas.CheckoutResponse,
    responses={404: {"model": schemas.ErrorResponse}},
    tags=["Checkout"],
    summary="Compose the WhatsApp order message",
)
async def checkout_whatsapp(
    data: schemas.CheckoutRequest,
    storage: BaseStorage = Depends(get_storage),
) -> schemas.CheckoutResponse:
    """
    Build the order message and wa.me link for the given lines.

    Nothing is stored; the client opens the returned URL.
    """
    cart = Cart()
    for line in data.items:
        product = await storage.get_product(line.product_id)
        if not product:
            raise HTTPException(status_code=404, detail=f"Product #{line.product_id} not found")
        cart.add_item(product, line.quantity)

    location = None
    if data.delivery_location_id is not None:
        location = await storage.get_delivery_location(data.delivery_location_id)
        if not location:
            raise HTTPException(status_code=404, detail="Delivery location not found")

    order = compose_order(cart, location)

    return schemas.CheckoutResponse(
        fulfillment=(
            schemas.FulfillmentEnum.DELIVERY if order.is_delivery
            else schemas.FulfillmentEnum.TAKEAWAY
        ),
        message=order.message,
        url=order.url,
        subtotal=order.subtotal,
        delivery_price=order.delivery_price,
        total=order.total,
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed input gets a generic 400 without field details."""
    logger.debug(f"Validation failed on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request"},
    )


@app.exception_handler(DuplicateSlugError)
async def duplicate_slug_handler(request: Request, exc: DuplicateSlugError) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={"success": False, "error": "Category slug already exists", "detail": exc.slug},
    )


@app.exception_handler(CdnConfigurationError)
async def cdn_config_exception_handler(request: Request, exc: CdnConfigurationError) -> JSONResponse:
    logger.warning(f"ImageKit request without configuration: {request.url.path}")
    return JSONResponse(
        status_code=503,
        content={"success": False, "error": "ImageKit is not configured", "detail": str(exc)},
    )


@app.exception_handler(CdnError)
async def cdn_exception_handler(request: Request, exc: CdnError) -> JSONResponse:
    logger.error(f"CDN error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"success": False, "error": "Image CDN unavailable", "detail": str(exc)},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.api_host, port=settings.api_port, reload=settings.is_development)
