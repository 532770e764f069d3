"""
API 依赖注入

提供记录获取、请求级解析、门店范围、页面缓存、失效服务等依赖。
所有请求级对象都在这里按请求创建，通过依赖注入显式传递，不放在全局变量中。
"""

from dataclasses import dataclass
from typing import Annotated, Optional

import structlog
from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import UpstreamFetchFailure
from app.core.security import IdentityProvider, get_identity_provider
from app.database.engine import get_db
from app.services.invalidation import InvalidationService
from app.services.location_context import LocationContext
from app.services.page_cache import PageCache, get_page_cache
from app.services.records import LocationRecord, RecordFetcher, SQLRecordFetcher, TenantRecord
from app.services.related_links import RelatedLinkValidator
from app.services.resolver import RequestResolver, ResolvedView

logger = structlog.get_logger(__name__)


async def get_record_fetcher(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RecordFetcher:
    """当前部署租户的记录获取器"""
    return SQLRecordFetcher(session=db, tenant_id=settings.TENANT_ID)


def get_request_resolver() -> RequestResolver:
    """每个请求一个解析缓存"""
    return RequestResolver()


@dataclass(frozen=True)
class SiteScope:
    """请求的站点范围：租户、门店、门店上下文与解析视图"""

    tenant: TenantRecord
    location: Optional[LocationRecord]
    context: LocationContext
    view: ResolvedView
    is_multi_location: bool = False


async def get_site_scope(
    fetcher: Annotated[RecordFetcher, Depends(get_record_fetcher)],
    resolver: Annotated[RequestResolver, Depends(get_request_resolver)],
    location: Annotated[Optional[str], Query(description="门店 slug")] = None,
) -> SiteScope:
    """
    解析请求的站点范围

    租户缺失时抛出 UpstreamFetchFailure；门店未找到或读取失败时降级为租户级范围
    """
    tenant = await fetcher.get_tenant()
    if tenant is None:
        raise UpstreamFetchFailure("Tenant record not available", details=f"tenant_id={settings.TENANT_ID}")

    log = logger.bind(tenant_id=tenant.id, location=location)

    location_record: Optional[LocationRecord] = None
    if location:
        try:
            location_record = await fetcher.get_location_by_slug(location)
        except UpstreamFetchFailure as e:
            log.warning("location_fetch_failed", error=e.message, details=e.details)
        if location_record is None:
            log.info("location_not_found_fallback_to_tenant")

    try:
        is_multi_location = await fetcher.is_multi_location()
    except UpstreamFetchFailure as e:
        log.warning("multi_location_check_failed", error=e.message)
        is_multi_location = False

    if location_record is not None:
        context = LocationContext.for_location(location_record.slug)
    else:
        context = LocationContext.tenant_wide()

    return SiteScope(
        tenant=tenant,
        location=location_record,
        context=context,
        view=resolver.resolve(tenant, location_record),
        is_multi_location=is_multi_location,
    )


def get_related_link_validator(
    fetcher: Annotated[RecordFetcher, Depends(get_record_fetcher)],
) -> RelatedLinkValidator:
    return RelatedLinkValidator(fetcher)


def get_invalidation_service(
    identity_provider: Annotated[IdentityProvider, Depends(get_identity_provider)],
    page_cache: Annotated[PageCache, Depends(get_page_cache)],
) -> InvalidationService:
    return InvalidationService(identity_provider=identity_provider, page_cache=page_cache)


# 类型别名
Fetcher = Annotated[RecordFetcher, Depends(get_record_fetcher)]
Scope = Annotated[SiteScope, Depends(get_site_scope)]
Validator = Annotated[RelatedLinkValidator, Depends(get_related_link_validator)]
Invalidator = Annotated[InvalidationService, Depends(get_invalidation_service)]
