"""
门店 / 租户字段回落解析

对固定字段集合逐字段应用优先级：
    门店非空值 > 租户非空值 > ""

规则集中在 RESOLVED_FIELDS 表中，调用方不再各自写 `a or b or ''`。
解析是纯函数，相同输入永远得到相同输出。
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from app.services.records import LocationRecord, TenantRecord


@dataclass(frozen=True)
class ResolvedView:
    """门店与租户合并后的视图，所有字段都是字符串（可能为空）"""

    name: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    phone: str = ""
    email: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "phone": self.phone,
            "email": self.email,
        }


LocationGetter = Callable[[LocationRecord], Optional[str]]
TenantGetter = Callable[[TenantRecord], Optional[str]]

# (字段名, 门店取值, 租户取值)
RESOLVED_FIELDS: Tuple[Tuple[str, LocationGetter, TenantGetter], ...] = (
    ("name", lambda loc: loc.location_name, lambda t: t.agency_name),
    ("address", lambda loc: loc.address, lambda t: t.address),
    ("city", lambda loc: loc.city, lambda t: t.city),
    ("state", lambda loc: loc.state, lambda t: t.state),
    ("zip", lambda loc: loc.zip, lambda t: t.zip),
    ("phone", lambda loc: loc.phone, lambda t: t.phone),
    # 门店没有独立邮箱
    ("email", lambda loc: None, lambda t: t.contact_email),
)


def _non_empty(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def resolve(tenant: TenantRecord, location: Optional[LocationRecord] = None) -> ResolvedView:
    """
    合并门店与租户字段

    每个字段独立判断，门店只填了部分字段时其余字段仍取租户值
    """
    values: Dict[str, str] = {}
    for field_name, location_getter, tenant_getter in RESOLVED_FIELDS:
        value = _non_empty(location_getter(location)) if location is not None else None
        if value is None:
            value = _non_empty(tenant_getter(tenant))
        values[field_name] = value or ""
    return ResolvedView(**values)


class RequestResolver:
    """
    请求级解析缓存

    按 (tenant_id, location_id) 记忆解析结果，只在单个请求内有效，
    每个请求由依赖注入新建一个实例
    """

    def __init__(self) -> None:
        self._views: Dict[Tuple[str, Optional[str]], ResolvedView] = {}

    def resolve(self, tenant: TenantRecord, location: Optional[LocationRecord] = None) -> ResolvedView:
        key = (tenant.id, location.id if location is not None else None)
        view = self._views.get(key)
        if view is None:
            view = resolve(tenant, location)
            self._views[key] = view
        return view

    def __len__(self) -> int:
        return len(self._views)
