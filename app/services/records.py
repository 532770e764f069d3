"""
记录获取（内容库读取层）

职责:
- 按 key 读取租户、门店记录
- 读取某个范围内已发布的保单页 slug 集合
- 读取已发布的术语表条目（关联引用）

返回与 ORM 解耦的只读记录，上层（解析器、校验器）只依赖这里的契约。
内容库异常统一包装为 UpstreamFetchFailure。
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Protocol, Set

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import UpstreamFetchFailure
from app.database.models import GlossaryTerm, Location, PolicyPage, Tenant

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TenantRecord:
    """租户记录"""

    id: str
    agency_name: str = ""
    phone: Optional[str] = None
    contact_email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    website_url: Optional[str] = None

    @classmethod
    def from_model(cls, tenant: Tenant) -> "TenantRecord":
        return cls(
            id=tenant.id,
            agency_name=tenant.agency_name or "",
            phone=tenant.phone,
            contact_email=tenant.contact_email,
            address=tenant.address,
            city=tenant.city,
            state=tenant.state,
            zip=tenant.zip,
            website_url=tenant.website_url,
        )


@dataclass(frozen=True)
class LocationRecord:
    """门店记录"""

    id: str
    tenant_id: str
    slug: str
    location_name: Optional[str] = None
    phone: Optional[str] = None
    address_line_1: Optional[str] = None
    address_line_2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[datetime] = None

    @property
    def address(self) -> Optional[str]:
        """两行地址合并为一行"""
        lines = [line.strip() for line in (self.address_line_1, self.address_line_2) if line and line.strip()]
        return ", ".join(lines) or None

    @classmethod
    def from_model(cls, location: Location) -> "LocationRecord":
        return cls(
            id=location.id,
            tenant_id=location.tenant_id,
            slug=location.slug,
            location_name=location.location_name,
            phone=location.phone,
            address_line_1=location.address_line_1,
            address_line_2=location.address_line_2,
            city=location.city,
            state=location.state,
            zip=location.zip,
            latitude=location.latitude,
            longitude=location.longitude,
            created_at=location.created_at,
        )


@dataclass(frozen=True)
class GlossaryTermRecord:
    """术语表条目（只取关联引用需要的字段）"""

    id: str
    slug: str
    title: str = ""
    related_policy_pages: Any = None

    @classmethod
    def from_model(cls, term: GlossaryTerm) -> "GlossaryTermRecord":
        return cls(
            id=term.id,
            slug=term.slug,
            title=term.title or "",
            related_policy_pages=term.related_policy_pages,
        )


class RecordFetcher(Protocol):
    """记录获取契约"""

    async def get_tenant(self) -> Optional[TenantRecord]: ...

    async def get_location_by_slug(self, slug: str) -> Optional[LocationRecord]: ...

    async def get_all_locations(self) -> List[LocationRecord]: ...

    async def get_primary_location(self) -> Optional[LocationRecord]: ...

    async def is_multi_location(self) -> bool: ...

    async def get_published_slugs(self, tenant_id: str, location_id: Optional[str]) -> Set[str]: ...

    async def get_glossary_term(self, slug: str, location_id: Optional[str]) -> Optional[GlossaryTermRecord]: ...


class SQLRecordFetcher:
    """
    基于 SQLAlchemy 的记录获取实现

    每个请求一个实例，绑定当前部署的 tenant_id
    """

    def __init__(self, session: AsyncSession, tenant_id: str):
        self.session = session
        self.tenant_id = tenant_id

    async def get_tenant(self) -> Optional[TenantRecord]:
        if not self.tenant_id:
            logger.error("tenant_id_not_configured")
            return None

        try:
            result = await self.session.execute(select(Tenant).where(Tenant.id == self.tenant_id))
        except SQLAlchemyError as e:
            raise UpstreamFetchFailure("Failed to fetch tenant", details=str(e)) from e

        tenant = result.scalar_one_or_none()
        return TenantRecord.from_model(tenant) if tenant else None

    async def get_location_by_slug(self, slug: str) -> Optional[LocationRecord]:
        try:
            result = await self.session.execute(
                select(Location).where(
                    Location.tenant_id == self.tenant_id,
                    Location.slug == slug,
                    Location.is_active == True,
                )
            )
        except SQLAlchemyError as e:
            raise UpstreamFetchFailure("Failed to fetch location", details=str(e)) from e

        location = result.scalar_one_or_none()
        return LocationRecord.from_model(location) if location else None

    async def get_all_locations(self) -> List[LocationRecord]:
        """所有启用的门店，按创建时间升序"""
        try:
            result = await self.session.execute(
                select(Location)
                .where(
                    Location.tenant_id == self.tenant_id,
                    Location.is_active == True,
                )
                .order_by(Location.created_at.asc())
            )
        except SQLAlchemyError as e:
            raise UpstreamFetchFailure("Failed to fetch locations", details=str(e)) from e

        return [LocationRecord.from_model(location) for location in result.scalars().all()]

    async def get_primary_location(self) -> Optional[LocationRecord]:
        """主门店：最早创建的启用门店"""
        locations = await self.get_all_locations()
        return locations[0] if locations else None

    async def is_multi_location(self) -> bool:
        try:
            result = await self.session.execute(
                select(func.count())
                .select_from(Location)
                .where(
                    Location.tenant_id == self.tenant_id,
                    Location.is_active == True,
                )
            )
        except SQLAlchemyError as e:
            raise UpstreamFetchFailure("Failed to count locations", details=str(e)) from e

        return (result.scalar() or 0) > 1

    async def get_published_slugs(self, tenant_id: str, location_id: Optional[str]) -> Set[str]:
        """
        已发布保单页的 slug 集合

        location_id 为 None 时返回租户级（无门店归属）的保单页
        """
        stmt = select(PolicyPage.slug).where(
            PolicyPage.tenant_id == tenant_id,
            PolicyPage.published == True,
        )
        if location_id is None:
            stmt = stmt.where(PolicyPage.location_id.is_(None))
        else:
            stmt = stmt.where(PolicyPage.location_id == location_id)

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise UpstreamFetchFailure("Failed to fetch published slugs", details=str(e)) from e

        return set(result.scalars().all())

    async def get_glossary_term(self, slug: str, location_id: Optional[str]) -> Optional[GlossaryTermRecord]:
        """已发布的术语表条目，范围规则与 get_published_slugs 相同"""
        stmt = select(GlossaryTerm).where(
            GlossaryTerm.tenant_id == self.tenant_id,
            GlossaryTerm.slug == slug,
            GlossaryTerm.published == True,
        )
        if location_id is None:
            stmt = stmt.where(GlossaryTerm.location_id.is_(None))
        else:
            stmt = stmt.where(GlossaryTerm.location_id == location_id)

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise UpstreamFetchFailure("Failed to fetch glossary term", details=str(e)) from e

        term = result.scalar_one_or_none()
        return GlossaryTermRecord.from_model(term) if term else None
