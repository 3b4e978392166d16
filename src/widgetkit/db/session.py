from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from widgetkit.core.config import settings
from widgetkit.db.base import Base

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    pool_pre_ping=True,      # 取连接时先探活，防止拿到失效连接
)

SessionLocal = async_sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
    class_=AsyncSession
)

async def init_models() -> None:
    """Create missing tables. Idempotent."""
    # 导入模型以注册到 Base.metadata
    from widgetkit import models  # noqa: F401
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

# 依赖项：为每个API请求提供一个独立的数据库会话
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a transactional scope around a request.
    Commits when the request handler completes, rolls back on any exception.
    """
    async with SessionLocal() as session:
        async with session.begin():
            yield session
