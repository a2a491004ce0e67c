from __future__ import annotations
from typing import Optional

from sqlalchemy import String, Integer, UniqueConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from product_importer.db.base import Base



"""
  全局属性（受控词表），例如 Color / Size
  name 是规范化后的 taxonomy 名（color），label 是展示名（Color）
"""
class AttributeTaxonomy(Base):

    __tablename__ = "attribute_taxonomies"

    id:       Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name:     Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    label:    Mapped[Optional[str]] = mapped_column(String(200))
    order_by: Mapped[str] = mapped_column(String(20), nullable=False, default="menu_order")



"""
  属性词条：taxonomy 下的一个可选值，例如 color / Red / red
"""
class Term(Base):

    __tablename__ = "terms"

    id:       Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    taxonomy: Mapped[str] = mapped_column(String(200), nullable=False)
    name:     Mapped[str] = mapped_column(String(200), nullable=False)
    slug:     Mapped[str] = mapped_column(String(200), nullable=False)

    __table_args__ = (
        UniqueConstraint("taxonomy", "slug", name="ux_terms_taxonomy_slug"),
        Index("ix_terms_taxonomy_name", "taxonomy", "name"),
    )
