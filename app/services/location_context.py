"""
门店上下文与链接改写

LocationContext 是请求级的不可变值，进入门店子树时创建一次，
之后只读；切换门店时创建新的上下文，不在原对象上修改。

改写规则（rewrite）：
1. 没有前缀：原样返回
2. 已经是 /locations/ 开头的链接：原样返回，避免重复加前缀
3. 根路径 "/"：返回门店首页（前缀本身）
4. 其他：前缀 + 单个 "/" + 去掉开头斜杠的 href
"""

from dataclasses import dataclass
from typing import Optional

from app.core.config import settings


def _locations_root() -> str:
    """规范化后的门店根路径，形如 /locations/"""
    root = "/" + settings.LOCATIONS_ROOT.strip("/") + "/"
    return root


def location_prefix(slug: str) -> str:
    """门店路径前缀，形如 /locations/<slug>"""
    return f"{_locations_root()}{slug.strip('/')}"


def rewrite(prefix: Optional[str], href: str) -> str:
    """把站内链接改写到门店范围内"""
    if not prefix:
        return href

    # 相对写法 locations/<slug>/... 同样视为已限定范围
    if ("/" + href.lstrip("/")).startswith(_locations_root()):
        return href

    if href == "/":
        return prefix

    return f"{prefix.rstrip('/')}/{href.lstrip('/')}"


@dataclass(frozen=True)
class LocationContext:
    """请求级门店上下文"""

    location_prefix: Optional[str] = None
    location_slug: Optional[str] = None

    @classmethod
    def tenant_wide(cls) -> "LocationContext":
        """租户级（非多门店）子树的上下文，不带前缀"""
        return cls()

    @classmethod
    def for_location(cls, slug: Optional[str]) -> "LocationContext":
        if not slug or not slug.strip("/"):
            return cls()
        slug = slug.strip("/")
        return cls(location_prefix=location_prefix(slug), location_slug=slug)

    @property
    def is_scoped(self) -> bool:
        return self.location_prefix is not None

    def scoped_to(self, slug: Optional[str]) -> "LocationContext":
        """切换到另一个门店范围，返回新的上下文"""
        return LocationContext.for_location(slug)

    def rewrite(self, href: str) -> str:
        return rewrite(self.location_prefix, href)
