from __future__ import annotations
from typing import Optional

from sqlalchemy import String, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column
from product_importer.db.base import Base, CreatedAtMixin



"""
  媒体附件表
  - file: 相对 uploads 目录的路径（yyyy/mm/name.ext），本站 URL 反查用
  - source_url: 外部来源标记，重复导入同一 URL 时直接复用
"""
class Attachment(CreatedAtMixin, Base):

    __tablename__ = "attachments"

    id:        Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    parent_id: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"), index=True)   # 所属商品

    file:       Mapped[str]           = mapped_column(String(500), nullable=False, index=True)
    mime_type:  Mapped[str]           = mapped_column(String(100), nullable=False)
    title:      Mapped[Optional[str]] = mapped_column(String(255))
    source_url: Mapped[Optional[str]] = mapped_column(Text, index=True)


    @property
    def is_image(self) -> bool:
        return (self.mime_type or "").startswith("image/")
