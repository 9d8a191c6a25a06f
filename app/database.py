"""
Database Connection Module
Handles the catalog database connection using SQLAlchemy async engine.

DATABASE_URL is optional: without it no engine is created and the
in-memory catalog store is used instead.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings

settings = get_settings()


# Base class for all our models
class Base(DeclarativeBase):
    pass


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    """
    Build an async engine for the given URL.

    Pool sizing only applies to server databases; SQLite (used in tests)
    manages its own pool.
    """
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        echo=echo,
        pool_size=5,  # Connection pool size
        max_overflow=10,  # Extra connections when pool is full
        pool_pre_ping=True,
    )


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory - creates new database sessions."""
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,  # Objects remain accessible after commit
    )


engine: Optional[AsyncEngine] = (
    create_engine_for(settings.database_url, echo=settings.debug)
    if settings.database_url
    else None
)


async def init_db(bind: AsyncEngine) -> None:
    """
    Create all tables in database.
    Called once at application startup when the relational store is selected.
    """
    # Register models on Base.metadata
    import app.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
