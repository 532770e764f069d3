"""
门店模型

带 tenant_id；单门店部署可以没有任何门店记录
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, Float, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.database.models.tenant import Tenant


class Location(Base, TimestampMixin):
    """
    门店实体

    slug 在同一租户内唯一，用于 /locations/<slug> 路由
    """

    __tablename__ = "locations"
    __table_args__ = (UniqueConstraint("tenant_id", "slug", name="uq_locations_tenant_slug"),)

    id: Mapped[str] = mapped_column(String(50), primary_key=True)

    tenant_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    slug: Mapped[str] = mapped_column(String(200), nullable=False)
    location_name: Mapped[Optional[str]] = mapped_column(String(200))

    # 联系方式（为空时回落到租户）
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    address_line_1: Mapped[Optional[str]] = mapped_column(String(500))
    address_line_2: Mapped[Optional[str]] = mapped_column(String(500))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(50))
    zip: Mapped[Optional[str]] = mapped_column(String(20))

    # 地理位置
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)

    is_active: Mapped[bool] = mapped_column(Boolean, server_default="true", nullable=False)

    # 关系
    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="locations")

    def __repr__(self) -> str:
        return f"<Location(id={self.id}, tenant_id={self.tenant_id}, slug={self.slug})>"
