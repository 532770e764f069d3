"""
数据库模型

所有 SQLAlchemy 模型的统一导出
"""

from app.database.models.tenant import Tenant
from app.database.models.location import Location
from app.database.models.content import ContentType, GlossaryTerm, PolicyPage

__all__ = [
    "Tenant",
    "Location",
    "PolicyPage",
    "GlossaryTerm",
    "ContentType",
]
