"""
关联链接校验

内容中保存的关联引用（如术语表条目的 "相关保单页"）可能已下线，
也可能只保存了基础 slug，而实际发布的 slug 带有门店后缀：
    umbrella-insurance -> umbrella-insurance-woodstock-ga

引用通常是编辑系统写入的 {"slug": ..., "title": ...}，也可能是 slug 字符串。

匹配规则（逐个引用）：
1. 精确命中已发布集合：保留原 slug
2. 已发布 slug 以 "<候选>-" 开头：改用匹配到的已发布 slug，标题不变
   多个命中时取字典序最小的一个
3. 都不命中：丢弃

不同引用匹配到同一个已发布 slug 时只保留第一个；同一引用重复出现时照常保留。
获取已发布集合失败时返回空列表，宁可不显示链接也不显示错误链接。
"""

import json
import re
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Union

import structlog

from app.services.location_context import LocationContext
from app.services.records import RecordFetcher

logger = structlog.get_logger(__name__)

_SCHEME_HOST_RE = re.compile(r"^https?://[^/]+", re.IGNORECASE)
_POLICIES_SEGMENT = "policies/"


@dataclass(frozen=True)
class RelatedReference:
    """保存的关联引用"""

    slug: str
    title: Optional[str] = None


@dataclass(frozen=True)
class RelatedLink:
    """校验通过的关联链接"""

    slug: str
    href: str
    title: Optional[str] = None

    def to_dict(self) -> dict:
        return {"slug": self.slug, "href": self.href, "title": self.title}


def match_published_slug(candidate: str, published_slugs: Set[str]) -> Optional[str]:
    """为单个候选 slug 找到当前在线的 slug，找不到返回 None"""
    if candidate in published_slugs:
        return candidate

    prefix = candidate + "-"
    matches = [slug for slug in published_slugs if slug == candidate or slug.startswith(prefix)]
    if not matches:
        return None
    return min(matches)


def validate(
    references: Sequence[RelatedReference],
    published_slugs: Set[str],
) -> List[RelatedReference]:
    """
    过滤引用，只保留已发布（或带门店后缀已发布）的

    保持输入顺序；返回的引用 slug 为在线 slug
    """
    validated: List[RelatedReference] = []
    # 在线 slug -> 第一个匹配到它的候选
    sources: Dict[str, str] = {}
    for reference in references:
        if not reference.slug:
            continue
        matched = match_published_slug(reference.slug, published_slugs)
        if matched is None:
            continue
        if sources.setdefault(matched, reference.slug) != reference.slug:
            continue
        validated.append(replace(reference, slug=matched))
    return validated


def normalize_reference(reference: str) -> str:
    """
    把保存的引用规范化为 slug

    https://agency.example/policies/umbrella-insurance -> umbrella-insurance
    /policies/umbrella-insurance -> umbrella-insurance
    """
    value = _SCHEME_HOST_RE.sub("", reference.strip())
    value = value.lstrip("/")
    if value.startswith(_POLICIES_SEGMENT):
        value = value[len(_POLICIES_SEGMENT):]
    return value.strip("/")


def _to_reference(item: Any) -> Optional[RelatedReference]:
    if isinstance(item, RelatedReference):
        return item if item.slug else None
    if isinstance(item, str):
        slug = normalize_reference(item)
        return RelatedReference(slug=slug) if slug else None
    if isinstance(item, dict) and isinstance(item.get("slug"), str):
        slug = normalize_reference(item["slug"])
        if not slug:
            return None
        title = item.get("title")
        if isinstance(title, str):
            title = title.strip() or None
        else:
            title = None
        return RelatedReference(slug=slug, title=title)
    return None


def parse_related_references(raw: Any) -> List[RelatedReference]:
    """
    解析保存的关联引用

    支持 {"slug", "title"} 对象列表、slug 字符串列表（可混用）、
    JSON 编码的列表、None；格式错误时返回空列表，无法识别的条目跳过
    """
    if not raw:
        return []

    items: Any = raw
    if isinstance(raw, str):
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("related_references_parse_error", error=str(e))
            return []

    if not isinstance(items, list):
        logger.warning("related_references_not_a_list", value_type=type(items).__name__)
        return []

    references = [_to_reference(item) for item in items]
    skipped = references.count(None)
    if skipped:
        logger.info("related_references_skipped", count=skipped)
    return [reference for reference in references if reference is not None]


class RelatedLinkValidator:
    """
    按门店范围校验关联链接

    从记录获取层读取已发布集合，校验后用门店上下文生成链接
    """

    def __init__(self, fetcher: RecordFetcher):
        self.fetcher = fetcher

    async def validate_for_scope(
        self,
        references: Iterable[Union[str, RelatedReference]],
        tenant_id: str,
        location_id: Optional[str],
    ) -> List[RelatedReference]:
        candidates = [ref for ref in map(_to_reference, references) if ref is not None]
        if not candidates:
            return []

        log = logger.bind(tenant_id=tenant_id, location_id=location_id)

        try:
            published_slugs = await self.fetcher.get_published_slugs(tenant_id, location_id)
        except Exception as e:
            log.warning("published_slugs_fetch_failed", error=str(e))
            return []

        validated = validate(candidates, published_slugs)

        dropped = [ref.slug for ref in candidates if match_published_slug(ref.slug, published_slugs) is None]
        if dropped:
            log.warning("related_links_filtered", count=len(dropped), slugs=dropped)

        return validated

    async def related_links(
        self,
        raw_references: Any,
        tenant_id: str,
        location_id: Optional[str],
        context: LocationContext,
    ) -> List[RelatedLink]:
        """解析 + 校验 + 门店范围链接"""
        candidates = parse_related_references(raw_references)
        references = await self.validate_for_scope(candidates, tenant_id, location_id)
        return [
            RelatedLink(
                slug=reference.slug,
                href=context.rewrite(f"/policies/{reference.slug}"),
                title=reference.title,
            )
            for reference in references
        ]
