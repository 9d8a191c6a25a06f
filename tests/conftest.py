"""
Shared fixtures.

Environment is pinned before the app is imported so settings never pick
up a developer's DATABASE_URL or ImageKit keys.
"""

import os

os.environ["DATABASE_URL"] = ""
os.environ["CDN_PROVIDER"] = "mock"
os.environ["CDN_SYNC_ENABLED"] = "false"
os.environ["WHATSAPP_PHONE"] = ""

import pytest
from fastapi.testclient import TestClient

from app.database import create_engine_for, init_db
from app.main import app
from app.models import UnitType
from app.schemas import Product
from app.services.cdn import MockCdnService, get_cdn_service
from app.services.storage import DatabaseStorage, MemStorage, get_storage, reset_storage


@pytest.fixture
def make_product():
    """Build Product snapshots without going through a store."""
    counter = {"next": 1}

    def _make(name="كبة مقلية", price=500, unit_type=UnitType.PIECE, **extra) -> Product:
        product_id = extra.pop("id", counter["next"])
        counter["next"] = max(counter["next"], product_id) + 1
        return Product(
            id=product_id,
            name=name,
            price=price,
            unit_type=unit_type,
            image=extra.pop("image", f"/images/{product_id}.png"),
            **extra,
        )

    return _make


@pytest.fixture
def mem_storage() -> MemStorage:
    return MemStorage()


@pytest.fixture
async def db_engine(tmp_path):
    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture(params=["memory", "database"])
async def storage(request, tmp_path):
    """Both catalog store variants, to check they honor the same contract."""
    if request.param == "memory":
        yield MemStorage()
        return

    engine = create_engine_for(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    await init_db(engine)
    yield DatabaseStorage(engine)
    await engine.dispose()


@pytest.fixture
def cdn() -> MockCdnService:
    return MockCdnService()


@pytest.fixture
def client(mem_storage, cdn):
    """API client wired to a fresh in-memory store and mock CDN."""
    app.dependency_overrides[get_storage] = lambda: mem_storage
    app.dependency_overrides[get_cdn_service] = lambda: cdn
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        reset_storage()
