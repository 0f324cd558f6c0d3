# clientvault/db/database.py
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from clientvault.db.base import Base
from clientvault.db.subscribers import EncryptionInterceptor


def create_engine(settings) -> AsyncEngine:
    """Create the async engine for the configured database"""
    url = settings.DATABASE_URL
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    if url.startswith("sqlite"):
        kwargs = {}
        if url.endswith("://") or ":memory:" in url:
            # One shared connection, otherwise every checkout gets an empty database
            kwargs["poolclass"] = StaticPool
        return create_async_engine(url, echo=settings.DEBUG, **kwargs)

    return create_async_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        echo=settings.DEBUG,
    )


def create_session_factory(engine: AsyncEngine, interceptor: EncryptionInterceptor) -> async_sessionmaker:
    """Session factory whose sessions encrypt/decrypt sensitive fields"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        info=interceptor.session_info(),
    )


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Database session dependency"""
    async with request.app.state.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(engine: AsyncEngine):
    """Initialize database (create tables)"""
    # Import all models to ensure they're registered
    from clientvault.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine):
    """Close database connections"""
    await engine.dispose()
