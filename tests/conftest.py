"""
Pytest configuration and fixtures
Shared test setup for all test modules
"""

import logging
from typing import AsyncGenerator, Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from clientvault.core.encryption import EncryptionService
from clientvault.core.keys import DerivedKey, derive_key
from clientvault.db.base import Base
from clientvault.db import models  # noqa: F401
from clientvault.db.sensitive_fields import SensitiveFieldRegistry
from clientvault.db.subscribers import EncryptionInterceptor

TEST_ENCRYPTION_KEY = "test-encryption-key-for-testing"


@pytest.fixture(scope="session")
def derived_key() -> DerivedKey:
    """Key derivation is slow; derive once per test run"""
    return derive_key(TEST_ENCRYPTION_KEY, "test")


@pytest.fixture(scope="session")
def other_key() -> DerivedKey:
    return derive_key("a-completely-different-secret", "test")


@pytest.fixture
def encryption_service(derived_key: DerivedKey) -> EncryptionService:
    return EncryptionService(derived_key)


@pytest.fixture
def registry() -> SensitiveFieldRegistry:
    return SensitiveFieldRegistry.default()


@pytest.fixture
def interceptor(encryption_service: EncryptionService, registry: SensitiveFieldRegistry) -> EncryptionInterceptor:
    return EncryptionInterceptor(encryption_service, registry)


@pytest.fixture
def engine():
    """In-memory SQLite with the full schema"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine, interceptor: EncryptionInterceptor) -> Generator[Session, None, None]:
    """Session with the encryption interceptor attached"""
    with Session(engine) as session:
        interceptor.attach(session)
        yield session
        session.rollback()


@pytest.fixture
def raw_session(engine) -> Generator[Session, None, None]:
    """Session on the same database without encryption"""
    with Session(engine) as session:
        yield session
        session.rollback()


@pytest.fixture
async def async_session(interceptor: EncryptionInterceptor) -> AsyncGenerator[AsyncSession, None]:
    """Async session with the interceptor attached through the factory"""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        info=interceptor.session_info(),
    )

    async with factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def clientvault_logs(caplog):
    """Let caplog see records from the non-propagating clientvault logger"""
    logger = logging.getLogger("clientvault")
    logger.propagate = True
    caplog.set_level(logging.DEBUG, logger="clientvault")
    yield caplog
    logger.propagate = False
