"""
附件解析：图片引用（URL）-> 附件 id。
顺序：本站 uploads 路径反查 -> 来源标记反查 -> 下载并记录来源标记。
新建的附件独立提交，后续商品保存失败也不会回滚。
"""
from __future__ import annotations
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from product_importer.core.config import settings
from product_importer.integrations.media import ImageDownloader, MediaError
from product_importer.repository import attachment_repo
from product_importer.services.importer.errors import AttachmentFetchFailedError

logger = logging.getLogger(__name__)

# CSV 里 "0" 表示“无图片”
_EMPTY_REFERENCES = ("", "0")


class AttachmentResolver:

    def __init__(self, db: Session, downloader: Optional[Any] = None, uploads_base_url: Optional[str] = None) -> None:
        self.db = db
        self.downloader = downloader if downloader is not None else ImageDownloader()
        if uploads_base_url:
            self.base_url = uploads_base_url.rstrip("/") + "/"
        else:
            self.base_url = settings.uploads_base_url


    def get_attachment_id(self, url: Any, product_id: int = 0) -> int:
        if url is None:
            return 0
        url = str(url).strip()
        if url in _EMPTY_REFERENCES:
            return 0

        if self.base_url in url:
            # 本站图片：按 yyyy/mm/slug.ext 反查
            relative = url.replace(self.base_url, "", 1)
            attachment_id = attachment_repo.find_id_by_file(self.db, relative)
        else:
            attachment_id = attachment_repo.find_id_by_source(self.db, url)

        if attachment_id:
            logger.debug("attachment reused: url=%s id=%s", url, attachment_id)
            return attachment_id

        return self._upload(url, product_id)


    def _upload(self, url: str, product_id: int) -> int:
        try:
            att = self.downloader.fetch_and_store(self.db, url, product_id)
        except MediaError as e:
            raise AttachmentFetchFailedError(str(e), data={"url": url, "status": 400}) from e

        if not att.is_image:
            raise AttachmentFetchFailedError(f'Not able to attach "{url}".', data={"url": url, "status": 400})

        # 记录来源，下次同一 URL 直接复用
        attachment_repo.set_source(self.db, att.id, url)
        return att.id
