"""
API 路由模块

统一注册所有 API 路由
"""

from fastapi import APIRouter

from app.api.v1 import revalidate, site

router = APIRouter()

# 页面缓存失效 Webhook
router.include_router(revalidate.router, tags=["缓存失效"])

# 站点只读接口（渲染层使用）
router.include_router(site.router, prefix="/v1/site", tags=["站点"])
