"""
租户模型

一个部署对应一个租户（保险代理机构），不带 tenant_id（自身就是租户）
"""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.database.models.location import Location


class Tenant(Base, TimestampMixin):
    """
    租户实体

    保存机构级默认联系方式，门店未填写的字段回落到这里
    """

    __tablename__ = "tenants"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)

    # 基本信息
    agency_name: Mapped[str] = mapped_column(String(200), nullable=False)
    website_url: Mapped[Optional[str]] = mapped_column(String(500))

    # 默认联系方式
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    contact_email: Mapped[Optional[str]] = mapped_column(String(200))
    address: Mapped[Optional[str]] = mapped_column(String(500))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(50))
    zip: Mapped[Optional[str]] = mapped_column(String(20))

    # 关系
    locations: Mapped[List["Location"]] = relationship(
        "Location", back_populates="tenant"
    )

    def __repr__(self) -> str:
        return f"<Tenant(id={self.id}, agency_name={self.agency_name})>"
