"""
页面缓存失效 Webhook

供编辑系统在内容变更后同步调用：

POST /api/revalidate?type=policy&slug=<slug>&location=<loc>
POST /api/revalidate?type=blog&slug=<slug>&topic=<topic>
Header: Authorization: Bearer <token>

- 200 {"invalidated": true, "paths": [...], "message": "..."}
- 400 参数缺失
- 401 缺少凭证 / 凭证无效
- 503 上游超时（可重试）
- 500 其他错误，带 details
"""

from typing import Annotated, Optional

import structlog
from fastapi import APIRouter, Header, Query
from fastapi.responses import JSONResponse

from app.api.deps import Invalidator
from app.core.exceptions import SiteCoreError
from app.services.invalidation import InvalidationRequest

logger = structlog.get_logger(__name__)

router = APIRouter()


def _error_response(error: SiteCoreError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if error.status_code == 401 else None
    return JSONResponse(status_code=error.status_code, content=error.to_dict(), headers=headers)


async def _run(
    service: Invalidator,
    request: InvalidationRequest,
    authorization: Optional[str],
) -> JSONResponse:
    try:
        result = await service.invalidate(request, authorization)
    except SiteCoreError as e:
        return _error_response(e)
    except Exception as e:
        logger.exception("invalidation_unexpected_error", error=str(e))
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to invalidate", "details": str(e)},
        )

    return JSONResponse(status_code=200, content=result.to_dict())


@router.post("/revalidate")
async def revalidate(
    service: Invalidator,
    content_type: Annotated[Optional[str], Query(alias="type", description="policy / blog")] = None,
    slug: Annotated[Optional[str], Query(description="内容 slug")] = None,
    topic: Annotated[Optional[str], Query(description="博客主题（仅 blog）")] = None,
    location: Annotated[Optional[str], Query(description="门店 slug")] = None,
    authorization: Annotated[Optional[str], Header()] = None,
) -> JSONResponse:
    """按内容类型失效相关页面"""
    request = InvalidationRequest(
        content_type=content_type,
        slug=slug,
        location_slug=location,
        topic=topic,
    )
    return await _run(service, request, authorization)


@router.post("/revalidate-blog")
async def revalidate_blog(
    service: Invalidator,
    slug: Annotated[Optional[str], Query(description="博客 slug")] = None,
    topic: Annotated[Optional[str], Query(description="博客主题")] = None,
    authorization: Annotated[Optional[str], Header()] = None,
) -> JSONResponse:
    """旧版博客失效接口，等价于 type=blog"""
    request = InvalidationRequest(content_type="blog", slug=slug, topic=topic)
    return await _run(service, request, authorization)
