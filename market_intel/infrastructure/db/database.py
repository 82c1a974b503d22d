"""
Database Configuration
SQLAlchemy async setup (SQLite via aiosqlite by default)
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from market_intel.config import settings


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


engine: Optional[AsyncEngine] = None
async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine(url: Optional[str] = None) -> AsyncEngine:
    """Create the async engine and session factory (idempotent)."""
    global engine, async_session_factory
    if engine is not None:
        return engine

    engine = create_async_engine(
        url or settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_pre_ping=True,
    )
    async_session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return engine


async def init_db():
    """Initialize database (create tables)"""
    create_engine()
    if not settings.AUTO_CREATE_TABLES:
        return
    async with engine.begin() as conn:
        # Import all models here to ensure they're registered
        from market_intel.infrastructure.db import models  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    """Close database connections"""
    global engine, async_session_factory
    if engine is not None:
        await engine.dispose()
    engine = None
    async_session_factory = None
