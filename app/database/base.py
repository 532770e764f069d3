"""
SQLAlchemy 基础模型与混入类

提供：
- Base: 声明式基类
- TimestampMixin: 时间戳字段
- ContentMixin: 可发布内容的公共字段（slug / title / published / 归属）
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    声明式基类

    所有模型都应继承此类
    """

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class TimestampMixin:
    """
    时间戳混入类

    提供 created_at 和 updated_at 字段
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class ContentMixin(TimestampMixin):
    """
    可发布内容混入类

    location_id 为空表示租户级内容（不归属任何门店）
    内容由外部编辑系统写入，本服务只读取 (slug, published)
    """

    slug: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    published: Mapped[bool] = mapped_column(Boolean, server_default="false", nullable=False)

    tenant_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    location_id: Mapped[Optional[str]] = mapped_column(
        String(50),
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
