"""
Catalog Storage Factory

Selects the catalog store once at process start:
    - DATABASE_URL set and reachable → DatabaseStorage
    - otherwise → MemStorage (data lost on restart)

Usage:
    from app.services.storage import get_storage

    storage = get_storage()
    products = await storage.get_products(is_popular=True)

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine

from app import database as app_database
from app.core.config import get_settings
from app.services.storage.base import BaseStorage, DuplicateSlugError
from app.services.storage.database import DatabaseStorage
from app.services.storage.memory import MemStorage

logger = logging.getLogger(__name__)

_storage: Optional[BaseStorage] = None


async def _database_available(engine: AsyncEngine) -> bool:
    """Create tables if needed and make sure a simple read works."""
    from app.models import Category

    try:
        await app_database.init_db(engine)
        async with engine.connect() as conn:
            await conn.execute(select(Category.id).limit(1))
        return True
    except Exception as e:
        logger.error(
            f"Database connection failed or tables missing, "
            f"falling back to memory storage: {e}"
        )
        return False


async def initialize_storage(engine: Optional[AsyncEngine] = None) -> BaseStorage:
    """
    Pick the catalog store for this process.

    Args:
        engine: Engine to check. Defaults to the engine built from
            DATABASE_URL (None when unset).

    Returns:
        BaseStorage: The selected store, also returned by get_storage()
    """
    global _storage

    engine = engine if engine is not None else app_database.engine

    if engine is not None and await _database_available(engine):
        _storage = DatabaseStorage(engine)
    else:
        if not get_settings().database_url:
            logger.info("DATABASE_URL not set, using in-memory catalog")
        _storage = MemStorage()

    logger.info(f"Storage: Using {type(_storage).__name__}")
    return _storage


def get_storage() -> BaseStorage:
    """
    Get the catalog store selected at startup.

    Usable directly or as a FastAPI dependency. If startup selection
    has not run (scripts, workers), falls back to a MemStorage.
    """
    global _storage

    if _storage is None:
        logger.warning("Storage requested before initialization, using MemStorage")
        _storage = MemStorage()
    return _storage


def reset_storage() -> None:
    """
    Forget the selected store.

    Useful for testing; the next get_storage() starts from scratch.
    """
    global _storage
    _storage = None
    logger.debug("Storage selection cleared")


__all__ = [
    "initialize_storage",
    "get_storage",
    "reset_storage",
    "BaseStorage",
    "DuplicateSlugError",
    "DatabaseStorage",
    "MemStorage",
]
