"""
模板变量替换

文案中可以写 {agencyName}、{city}、{state} 等变量，渲染前用解析后的视图替换。
未知值替换为空串，最后合并多余空白。
"""

import re
from datetime import datetime, timezone
from typing import Dict, Optional

from app.services.resolver import ResolvedView

TEMPLATE_VARIABLES = (
    "agencyName",
    "city",
    "state",
    "phone",
    "email",
    "address",
    "zip",
    "categoryName",
    "policyTitle",
    "locationName",
    "topicName",
    "year",
    "yearsInBusiness",
    "regionalDescriptor",
    "foundingYear",
)

_WHITESPACE_RE = re.compile(r"\s+")
_NON_DIGIT_RE = re.compile(r"\D")


def _current_year() -> str:
    return str(datetime.now(timezone.utc).year)


def build_template_context(
    view: ResolvedView,
    agency_name: str = "",
    location_name: Optional[str] = None,
    **extras: str,
) -> Dict[str, str]:
    """
    由解析视图构建模板上下文

    city 首字母大写，state 全大写；extras 覆盖同名变量
    """
    city = view.city
    context = {
        "agencyName": agency_name or view.name,
        "city": city[:1].upper() + city[1:].lower() if city else "",
        "state": view.state.upper(),
        "phone": view.phone,
        "email": view.email,
        "address": view.address,
        "zip": view.zip,
        "locationName": location_name or "",
        "year": _current_year(),
    }
    context.update({key: value for key, value in extras.items() if key in TEMPLATE_VARIABLES})
    return context


def interpolate_template(template: Optional[str], context: Dict[str, str]) -> str:
    """替换 {variable}，未提供的变量替换为空串（year 默认当前年份）"""
    if not template:
        return ""

    result = template
    for name in TEMPLATE_VARIABLES:
        value = context.get(name) or ""
        if name == "year" and not value:
            value = _current_year()
        result = result.replace("{" + name + "}", value)

    return _WHITESPACE_RE.sub(" ", result).strip()


def format_phone_number(value: Optional[str]) -> str:
    """10 位号码格式化为 (AAA) BBB-CCCC，其他情况原样返回"""
    if not value:
        return ""
    digits = _NON_DIGIT_RE.sub("", value)
    if len(digits) != 10:
        return value
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def normalize_phone_number(value: Optional[str]) -> str:
    """规范化为 tel: 链接使用的 +1XXXXXXXXXX 形式"""
    if not value:
        return ""
    digits = _NON_DIGIT_RE.sub("", value)
    if not digits:
        return ""
    if len(digits) == 10:
        return f"+1{digits}"
    return f"+{digits}"
