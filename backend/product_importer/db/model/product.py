from __future__ import annotations
from typing import Optional, Dict, Any

from sqlalchemy import (
    String, Integer, JSON, Index, text,
)
from sqlalchemy.orm import Mapped, mapped_column
from product_importer.db.base import Base, TimestampMixin



"""
  商品主表
  - 检索/约束需要的字段单独成列（type / status / sku / slug / parent_id）
  - 其余字段整体存 data（商品实体 model_dump 后的 JSON），读取时按 type 还原成对应实体
"""
class ProductRecord(TimestampMixin, Base):

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    type:   Mapped[str]           = mapped_column(String(32), nullable=False, index=True)   # simple/variable/grouped/external/variation
    status: Mapped[str]           = mapped_column(String(20), nullable=False, server_default=text("'importing'"))
    name:   Mapped[str]           = mapped_column(String(255), nullable=False, server_default=text("''"))
    slug:   Mapped[Optional[str]] = mapped_column(String(200), index=True)
    sku:    Mapped[Optional[str]] = mapped_column(String(100), unique=True)                   # 空 SKU 存 NULL，唯一约束只管非空
    parent_id: Mapped[int]        = mapped_column(Integer, nullable=False, server_default=text("0"), index=True)

    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)


    __table_args__ = (
        Index("ix_products_type_status", "type", "status"),
    )
