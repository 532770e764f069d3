"""
页面缓存失效服务

内容编辑后由编辑系统同步调用，返回本次失效的全部路径。

单次调用的状态流转：
    UNAUTHENTICATED -> AUTHENTICATING -> AUTHORIZED -> PATHS_COMPUTED -> INVALIDATED
任一步失败进入 REJECTED，且不会执行后续步骤（缺少凭证时不计算路径、不失效任何页面）。

路径规则：
- policy + location: /locations/<loc>/policies/<slug>, /locations/<loc>/policies, /
- policy:            /policies/<slug>, /policies, /
- blog:              /blog/<topic>/<slug>, /blog/<topic>（有 topic 时）,
                     /blog/<slug>（旧 URL）, /blog
                     带 location 时再加上 /locations/<loc> 下的同一组路径
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import structlog

from app.core.exceptions import SiteCoreError, ValidationError
from app.core.security import IdentityProvider, Principal, parse_bearer_token
from app.database.models.content import ContentType
from app.services.location_context import LocationContext
from app.services.page_cache import PageCache

logger = structlog.get_logger(__name__)

ROOT_PATH = "/"


class InvalidationState(str, Enum):
    """单次失效调用的状态"""
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHORIZED = "authorized"
    PATHS_COMPUTED = "paths_computed"
    INVALIDATED = "invalidated"
    REJECTED = "rejected"


@dataclass(frozen=True)
class InvalidationRequest:
    """失效请求参数"""

    content_type: Optional[str]
    slug: Optional[str] = None
    location_slug: Optional[str] = None
    topic: Optional[str] = None


@dataclass
class InvalidationResult:
    """失效结果，paths 为全部目标路径（不论是否在缓存中）"""

    paths: List[str]
    evicted: List[str] = field(default_factory=list)
    principal_id: Optional[str] = None
    state: InvalidationState = InvalidationState.INVALIDATED

    def to_dict(self) -> dict:
        return {
            "invalidated": True,
            "paths": self.paths,
            "message": f"Invalidated {len(self.paths)} path(s)",
        }


def _clean_segment(value: Optional[str], name: str) -> Optional[str]:
    """路径片段校验：去掉首尾斜杠，不允许内部斜杠或空白"""
    if value is None:
        return None
    value = value.strip().strip("/")
    if not value:
        return None
    if "/" in value or any(ch.isspace() for ch in value):
        raise ValidationError(f"Invalid {name} parameter", details=f"{name} must be a single path segment")
    return value


def parse_content_type(content_type: Optional[str]) -> ContentType:
    """校验 type 参数"""
    if not content_type:
        raise ValidationError("Missing type parameter (policy, blog)")
    try:
        return ContentType(content_type.strip().lower())
    except ValueError as e:
        allowed = ", ".join(t.value for t in ContentType)
        raise ValidationError(
            f"Unsupported type parameter: {content_type}",
            details=f"type must be one of: {allowed}",
        ) from e


def _blog_paths(slug: str, topic: Optional[str]) -> List[str]:
    paths = []
    if topic:
        paths.append(f"/blog/{topic}/{slug}")
        paths.append(f"/blog/{topic}")
    # 旧 URL 结构（无 topic）同样失效
    paths.append(f"/blog/{slug}")
    paths.append("/blog")
    return paths


def compute_paths(
    content_type: str,
    slug: Optional[str],
    location_slug: Optional[str] = None,
    topic: Optional[str] = None,
) -> List[str]:
    """
    计算需要失效的页面路径

    结果是确定的：相同参数总是得到相同的有序路径列表
    """
    kind = parse_content_type(content_type)
    slug = _clean_segment(slug, "slug")
    location_slug = _clean_segment(location_slug, "location")
    topic = _clean_segment(topic, "topic")

    if not slug:
        raise ValidationError(f"Missing slug parameter for {kind.value} invalidation")

    if kind == ContentType.POLICY:
        if location_slug:
            context = LocationContext.for_location(location_slug)
        else:
            context = LocationContext.tenant_wide()
        return [
            context.rewrite(f"/policies/{slug}"),
            context.rewrite("/policies"),
            # 首页展示保单摘要，始终失效租户根路径
            ROOT_PATH,
        ]

    paths = _blog_paths(slug, topic)
    if location_slug:
        context = LocationContext.for_location(location_slug)
        paths.extend(context.rewrite(path) for path in _blog_paths(slug, topic))
    return paths


class InvalidationService:
    """
    失效服务

    只有页面缓存失效这一种副作用，不修改内容库
    """

    def __init__(self, identity_provider: IdentityProvider, page_cache: PageCache):
        self.identity_provider = identity_provider
        self.page_cache = page_cache

    async def invalidate(
        self,
        request: InvalidationRequest,
        authorization: Optional[str],
    ) -> InvalidationResult:
        """
        校验凭证、计算路径并逐个失效

        Raises:
            ValidationError: 参数缺失或非法
            Unauthorized: 缺少或格式错误的 Bearer 凭证
            AuthenticationFailed: 令牌无效或过期
            TransientFailure: 身份提供方或缓存超时
            UpstreamFetchFailure: 身份提供方或缓存不可用
        """
        state = InvalidationState.UNAUTHENTICATED
        log = logger.bind(
            content_type=request.content_type,
            slug=request.slug,
            location=request.location_slug,
            topic=request.topic,
        )

        try:
            parse_content_type(request.content_type)

            token = parse_bearer_token(authorization)
            state = InvalidationState.AUTHENTICATING
            principal: Principal = await self.identity_provider.verify(token)
            state = InvalidationState.AUTHORIZED
            log = log.bind(principal_id=principal.id)

            paths = compute_paths(
                request.content_type,
                request.slug,
                location_slug=request.location_slug,
                topic=request.topic,
            )
            state = InvalidationState.PATHS_COMPUTED

            evicted = []
            for path in paths:
                if await self.page_cache.evict(path):
                    evicted.append(path)
        except SiteCoreError as e:
            log.warning(
                "invalidation_rejected",
                state=state.value,
                error_code=e.error_code,
                error=e.message,
                details=e.details,
            )
            raise

        log.info("invalidation_completed", paths=paths, evicted_count=len(evicted))
        return InvalidationResult(
            paths=paths,
            evicted=evicted,
            principal_id=principal.id,
            state=InvalidationState.INVALIDATED,
        )
