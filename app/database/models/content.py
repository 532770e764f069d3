"""
内容模型

保单页、术语表条目，均由外部编辑系统维护
"""

from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base import Base, ContentMixin


class ContentType(str, Enum):
    """可失效的内容类型"""
    POLICY = "policy"  # 保单页
    BLOG = "blog"      # 博客文章


class PolicyPage(Base, ContentMixin):
    """保单页"""

    __tablename__ = "policy_pages"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    policy_type: Mapped[Optional[str]] = mapped_column(String(100))

    def __repr__(self) -> str:
        return f"<PolicyPage(id={self.id}, slug={self.slug}, published={self.published})>"


class GlossaryTerm(Base, ContentMixin):
    """
    术语表条目

    related_policy_pages 为编辑时写入的引用，形如 [{"slug": ..., "title": ...}]，
    也可能是 slug 字符串；引用可能已失效，渲染前必须校验
    """

    __tablename__ = "glossary_terms"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    related_policy_pages: Mapped[Optional[list]] = mapped_column(JSONB)

    def __repr__(self) -> str:
        return f"<GlossaryTerm(id={self.id}, slug={self.slug})>"
