"""
Site Read API

页面渲染层使用的只读接口：
- 门店 / 租户合并后的联系信息
- 门店列表（带门店首页链接）
- 校验后的关联保单页链接（含术语表条目的相关保单页）
- 链接改写

只读、不做鉴权；校验关联链接失败时返回空数组
"""

from typing import List, Optional

import structlog
from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from app.api.deps import Fetcher, Scope, Validator
from app.services.location_context import LocationContext
from app.services.records import LocationRecord
from app.services.templating import (
    build_template_context,
    format_phone_number,
    interpolate_template,
    normalize_phone_number,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


# ============================================================
# Response Schemas
# ============================================================

class ResolvedViewResponse(BaseModel):
    """合并后的联系信息"""
    name: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    phone: str = ""
    phone_display: str = ""
    phone_href: str = ""
    email: str = ""


class SiteViewResponse(BaseModel):
    """请求范围内的站点视图"""
    tenant_id: str
    agency_name: str
    canonical_url: Optional[str] = None
    location_slug: Optional[str] = None
    location_prefix: Optional[str] = None
    is_multi_location: bool = False
    home_href: str = "/"
    view: ResolvedViewResponse
    tagline: Optional[str] = Field(None, description="模板替换后的文案")


class LocationItem(BaseModel):
    """门店列表项"""
    slug: str
    name: str
    city: str = ""
    state: str = ""
    phone: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    home_href: str


class RelatedLinkItem(BaseModel):
    """校验后的关联链接"""
    slug: str
    href: str
    title: Optional[str] = None


class RewriteResponse(BaseModel):
    href: str
    location_prefix: Optional[str] = None


class GlossaryRelatedResponse(BaseModel):
    """术语表条目的相关保单页"""
    term: str
    title: str = ""
    related_policies: List[RelatedLinkItem]


# ============================================================
# API Endpoints
# ============================================================

@router.get("/view", response_model=SiteViewResponse)
async def get_site_view(
    scope: Scope,
    template: Optional[str] = Query(None, max_length=1000, description="可选文案模板，如 Serving {city}, {state}"),
) -> SiteViewResponse:
    """
    获取门店范围内的站点视图

    门店字段为空时回落到租户字段；门店不存在时返回租户级视图
    """
    view = scope.view
    tagline = None
    if template:
        context = build_template_context(
            view,
            agency_name=scope.tenant.agency_name,
            location_name=scope.location.location_name if scope.location else None,
        )
        tagline = interpolate_template(template, context)

    return SiteViewResponse(
        tenant_id=scope.tenant.id,
        agency_name=scope.tenant.agency_name,
        canonical_url=scope.tenant.website_url,
        location_slug=scope.location.slug if scope.location else None,
        location_prefix=scope.context.location_prefix,
        is_multi_location=scope.is_multi_location,
        home_href=scope.context.rewrite("/"),
        view=ResolvedViewResponse(
            **view.to_dict(),
            phone_display=format_phone_number(view.phone),
            phone_href=normalize_phone_number(view.phone),
        ),
        tagline=tagline,
    )


def _location_item(location: LocationRecord) -> LocationItem:
    context = LocationContext.for_location(location.slug)
    return LocationItem(
        slug=location.slug,
        name=location.location_name or location.slug,
        city=location.city or "",
        state=location.state or "",
        phone=format_phone_number(location.phone),
        latitude=location.latitude,
        longitude=location.longitude,
        home_href=context.rewrite("/"),
    )


@router.get("/locations", response_model=List[LocationItem])
async def list_locations(fetcher: Fetcher) -> List[LocationItem]:
    """启用的门店列表，按创建时间排序（第一个为主门店）"""
    locations = await fetcher.get_all_locations()
    items = [_location_item(location) for location in locations]

    logger.info("site_locations_list", count=len(items))
    return items


@router.get("/locations/primary", response_model=LocationItem)
async def get_primary_location(fetcher: Fetcher) -> LocationItem:
    """主门店（最早创建的启用门店）"""
    location = await fetcher.get_primary_location()
    if location is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No active location")
    return _location_item(location)


@router.get("/related-policies", response_model=List[RelatedLinkItem])
async def list_related_policies(
    scope: Scope,
    validator: Validator,
    ref: List[str] = Query([], description="保存的关联引用（slug 或路径）"),
) -> List[RelatedLinkItem]:
    """
    校验关联保单页引用

    只返回当前已发布的页面，链接限定在请求的门店范围内
    """
    location_id = scope.location.id if scope.location else None
    links = await validator.related_links(ref, scope.tenant.id, location_id, scope.context)
    return [RelatedLinkItem(**link.to_dict()) for link in links]


@router.get("/glossary/{term}/related-policies", response_model=GlossaryRelatedResponse)
async def list_glossary_related_policies(
    term: str,
    scope: Scope,
    fetcher: Fetcher,
    validator: Validator,
) -> GlossaryRelatedResponse:
    """
    术语表条目的相关保单页

    读取条目保存的 {slug, title} 引用，校验后返回带标题的门店范围链接
    """
    location_id = scope.location.id if scope.location else None
    record = await fetcher.get_glossary_term(term, location_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Glossary term not found")

    links = await validator.related_links(
        record.related_policy_pages, scope.tenant.id, location_id, scope.context
    )
    return GlossaryRelatedResponse(
        term=record.slug,
        title=record.title,
        related_policies=[RelatedLinkItem(**link.to_dict()) for link in links],
    )


@router.get("/rewrite", response_model=RewriteResponse)
async def rewrite_href(
    href: str = Query(..., min_length=1, max_length=2000),
    location: Optional[str] = Query(None, description="门店 slug"),
) -> RewriteResponse:
    """把站内链接改写到门店范围"""
    context = LocationContext.for_location(location)
    return RewriteResponse(href=context.rewrite(href), location_prefix=context.location_prefix)
