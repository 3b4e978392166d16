# tests/conftest.py

from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine
)
from sqlalchemy.pool import StaticPool
from widgetkit.main import app
from widgetkit.db.session import get_db
from widgetkit.db.base import Base
from widgetkit.core.config import settings
from widgetkit import models  # noqa: F401  注册模型到 Base.metadata

# ==============================================================================
# 1. 数据库 Fixtures
# ==============================================================================

@pytest.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """
    每个测试一个全新的内存 SQLite 数据库。
    StaticPool 让所有会话共用同一个连接，否则 :memory: 库在连接间不可见。
    """
    engine = create_async_engine(
        settings.DATABASE_URL_TEST,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()

@pytest.fixture(scope="function")
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """
    测试结束后回滚，测试代码可以在 flush 之后继续安全地使用 ORM 对象。
    """
    TestSessionLocal = async_sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=db_engine, class_=AsyncSession
    )
    async with TestSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()

# ==============================================================================
# 2. HTTP Client Fixture
# ==============================================================================

@pytest.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    只覆盖最底层的 get_db 依赖，让 FastAPI 的 DI 构建上层的 SchemaService。
    ASGITransport 不触发 lifespan，因此不会加载内置 schema。
    """
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
