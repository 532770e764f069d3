"""
保险代理多门店站点 - 后端主入口

职责:
- 门店 / 租户字段回落解析
- 门店范围链接改写
- 关联保单页链接校验
- 页面缓存定向失效（Webhook）
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api import router as api_router
from app.core.config import settings
from app.core.exceptions import SiteCoreError
from app.core.logging import setup_logging
from app.database.engine import close_db
from app.services.page_cache import close_page_cache

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理"""
    setup_logging()
    yield
    await close_page_cache()
    await close_db()


async def site_core_error_handler(request: Request, exc: SiteCoreError) -> JSONResponse:
    """领域错误统一转换为 JSON 响应"""
    logger.warning(
        "request_failed",
        path=request.url.path,
        error_code=exc.error_code,
        error=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Agency Site Backend",
        description="多门店保险代理站点：内容解析与页面缓存失效",
        version="0.1.0",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SiteCoreError, site_core_error_handler)

    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    async def health_check() -> dict:
        """健康检查端点"""
        return {"status": "healthy", "service": "agency-site-backend", "version": "0.1.0"}

    return app


app = create_app()
