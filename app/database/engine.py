"""
数据库引擎与会话管理

使用 SQLAlchemy 2.0 异步引擎 + asyncpg

连接池配置说明：
- pool_size: 连接池中保持的连接数（默认 5）
- max_overflow: 超出 pool_size 后允许的额外连接数（默认 10）
- pool_timeout: 获取连接的超时时间（秒）
- pool_recycle: 连接回收时间（秒），防止数据库断开空闲连接
- pool_pre_ping: 每次获取连接前检测连接是否有效
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from app.core.config import settings


def _get_pool_config() -> dict:
    """
    获取连接池配置

    - test: 使用 NullPool（无连接池），每次请求创建新连接
    - 其他环境: 从配置读取连接池参数
    """
    if settings.ENV == "test":
        return {"poolclass": NullPool}

    return {
        "poolclass": AsyncAdaptedQueuePool,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
    }


# 创建异步引擎（带连接池）
engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    **_get_pool_config(),
)

# 创建异步会话工厂
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    获取数据库会话依赖

    读路径只做查询，不提交
    """
    async with async_session_maker() as session:
        yield session


async def close_db() -> None:
    """
    关闭数据库连接

    在应用关闭时调用
    """
    await engine.dispose()
