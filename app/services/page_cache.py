"""
页面缓存失效（Redis）

渲染层把页面写入共享的 Redis，缓存 key 为页面路径，例如
agency-site:page:/locations/woodstock-ga/policies

本服务只负责失效：单个路径的失效是一次 Redis DEL，重复失效是无操作。
所有 worker 共用同一份缓存，任一 worker 完成失效后其他 worker 立即可见。
失效失败会抛出，由失效接口返回明确的错误。
"""

import asyncio
from typing import Optional

import redis.asyncio as redis
import structlog
from pydantic import BaseModel
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from app.core.config import settings
from app.core.exceptions import TransientFailure, UpstreamFetchFailure

logger = structlog.get_logger(__name__)


class PageCacheConfig(BaseModel):
    """页面缓存配置"""
    prefix: str = "agency-site:page"  # 缓存 key 前缀
    timeout_seconds: float = 2.0  # 单次 Redis 操作超时

    @classmethod
    def from_settings(cls) -> "PageCacheConfig":
        return cls(
            prefix=settings.PAGE_CACHE_PREFIX,
            timeout_seconds=settings.PAGE_CACHE_TIMEOUT_SECONDS,
        )


class PageCache:
    """共享页面缓存的失效端"""

    def __init__(
        self,
        config: Optional[PageCacheConfig] = None,
        redis_client: Optional[redis.Redis] = None,
    ):
        self.config = config or PageCacheConfig.from_settings()
        self._redis = redis_client

    def _get_redis(self) -> redis.Redis:
        """获取 Redis 连接"""
        if self._redis is None:
            self._redis = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_timeout=self.config.timeout_seconds,
                socket_connect_timeout=self.config.timeout_seconds,
            )
        return self._redis

    def make_key(self, path: str) -> str:
        """生成完整的缓存 key"""
        return f"{self.config.prefix}:{path}"

    async def evict(self, path: str) -> bool:
        """
        失效单个页面

        Returns:
            失效前该页面是否在缓存中；已失效的路径返回 False，不报错

        Raises:
            TransientFailure: Redis 超时
            UpstreamFetchFailure: Redis 其他错误
        """
        key = self.make_key(path)

        try:
            deleted = await asyncio.wait_for(
                self._get_redis().delete(key), timeout=self.config.timeout_seconds
            )
        except (asyncio.TimeoutError, RedisTimeoutError) as e:
            raise TransientFailure("Page cache eviction timed out", details=f"path={path}") from e
        except RedisError as e:
            raise UpstreamFetchFailure("Page cache eviction failed", details=str(e)) from e

        logger.debug("page_cache_evicted", path=path, existed=bool(deleted))
        return bool(deleted)

    async def close(self) -> None:
        """关闭连接"""
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


# 全局缓存实例
_page_cache: Optional[PageCache] = None


def get_page_cache() -> PageCache:
    """获取页面缓存单例"""
    global _page_cache
    if _page_cache is None:
        _page_cache = PageCache()
    return _page_cache


async def close_page_cache() -> None:
    global _page_cache
    if _page_cache is not None:
        await _page_cache.close()
        _page_cache = None
