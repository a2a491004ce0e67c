# media attachment repository

from __future__ import annotations
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from product_importer.db.model.attachment import Attachment


def find_id_by_file(db: Session, relative_path: str) -> int:
    """本站 uploads 下的文件：按相对路径（yyyy/mm/name.ext）反查。"""
    if not relative_path:
        return 0
    found = db.execute(
        select(Attachment.id).where(Attachment.file == relative_path).order_by(Attachment.id).limit(1)
    ).scalar_one_or_none()
    return int(found or 0)


def find_id_by_source(db: Session, url: str) -> int:
    """外部 URL：按之前记录的来源标记反查。"""
    if not url:
        return 0
    found = db.execute(
        select(Attachment.id).where(Attachment.source_url == url).order_by(Attachment.id).limit(1)
    ).scalar_one_or_none()
    return int(found or 0)


def create_attachment(
    db: Session,
    *,
    file: str,
    mime_type: str,
    parent_id: int = 0,
    title: Optional[str] = None,
    source_url: Optional[str] = None,
) -> Attachment:
    # 附件单独提交：不跟随商品保存的成败回滚
    att = Attachment(file=file, mime_type=mime_type, parent_id=parent_id or 0, title=title, source_url=source_url)
    db.add(att)
    db.commit()
    db.refresh(att)
    return att


def set_source(db: Session, attachment_id: int, url: str) -> None:
    att = db.get(Attachment, attachment_id)
    if att is None:
        return
    att.source_url = url
    db.commit()
