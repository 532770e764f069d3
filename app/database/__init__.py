"""
数据库模块

提供 SQLAlchemy 2.0 异步数据库支持
"""

from app.database.base import Base, ContentMixin, TimestampMixin
from app.database.engine import async_session_maker, close_db, engine, get_db

__all__ = [
    # Engine
    "engine",
    "async_session_maker",
    "get_db",
    "close_db",
    # Base
    "Base",
    "TimestampMixin",
    "ContentMixin",
]
