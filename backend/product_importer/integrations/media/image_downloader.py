"""
图片下载 + 落盘 + 建附件记录。
  - 只负责把一个 URL 变成一条附件记录，不做重试/限流；
  - 内容类型不在白名单、超出大小限制都直接抛 MediaError 子类，由上层决定怎么报。
"""

from __future__ import annotations
import logging
import mimetypes
import posixpath
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import requests
from sqlalchemy.orm import Session

from product_importer.core.config import settings
from product_importer.db.model.attachment import Attachment
from product_importer.integrations.media.errors import MediaFetchError, MediaTooLargeError, MediaTypeError
from product_importer.repository import attachment_repo
from product_importer.utils.text import filename_from_url, sanitize_title

logger = logging.getLogger(__name__)


IMAGE_EXTS = {".jpg", ".jpeg", ".jpe", ".png", ".gif", ".webp"}


@dataclass
class DownloadedImage:
    filename: str
    content: bytes
    mime_type: str


class ImageDownloader:
    """Fetches remote images into UPLOADS_DIR and registers them as attachments."""

    def __init__(
        self,
        uploads_dir: Optional[str] = None,
        timeout: Optional[int] = None,
        max_bytes: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.uploads_dir = Path(uploads_dir or settings.UPLOADS_DIR)
        self.timeout = timeout or settings.IMAGE_FETCH_TIMEOUT
        self.max_bytes = max_bytes or settings.IMAGE_MAX_BYTES
        self.allowed_mime_types = {m.lower() for m in settings.IMAGE_ALLOWED_MIME_TYPES}
        self._session = session or requests.Session()


    # ---------- Public ----------
    def fetch_and_store(self, db: Session, url: str, parent_id: int = 0) -> Attachment:
        image = self.download(url)
        relative = self._write(image)
        att = attachment_repo.create_attachment(
            db,
            file=relative,
            mime_type=image.mime_type,
            parent_id=parent_id,
            title=posixpath.splitext(image.filename)[0],
        )
        logger.info("image stored: url=%s attachment=%s file=%s", url, att.id, relative)
        return att


    def download(self, url: str) -> DownloadedImage:
        filename = filename_from_url(url)
        if not filename:
            raise MediaFetchError(f"Invalid image URL: {url}")
        try:
            resp = self._session.get(url, timeout=self.timeout, stream=True)
        except requests.RequestException as e:
            raise MediaFetchError(f"Error getting remote image {url}. Error: {e}") from e

        try:
            if resp.status_code != 200:
                raise MediaFetchError(f"Error getting remote image {url}. Error: HTTP {resp.status_code}")

            mime_type = self._mime_type(resp, filename)
            content = self._read_limited(resp, url)
        finally:
            resp.close()

        if not content:
            raise MediaFetchError(f"Error getting remote image {url}. Error: empty body")
        return DownloadedImage(filename=self._with_extension(filename, mime_type), content=content, mime_type=mime_type)


    # ---------- Internals ----------
    def _mime_type(self, resp: requests.Response, filename: str) -> str:
        ctype = (resp.headers.get("Content-Type") or "").split(";")[0].strip().lower()
        if not ctype or ctype == "application/octet-stream":
            ctype = (mimetypes.guess_type(filename)[0] or "").lower()
        if ctype not in self.allowed_mime_types:
            raise MediaTypeError(f"Invalid image type: {ctype or 'unknown'}")
        return ctype


    def _read_limited(self, resp: requests.Response, url: str) -> bytes:
        chunks = []
        total = 0
        for chunk in resp.iter_content(chunk_size=64 * 1024):
            if not chunk:
                continue
            total += len(chunk)
            if total > self.max_bytes:
                raise MediaTooLargeError(f"Remote image {url} is larger than {self.max_bytes} bytes")
            chunks.append(chunk)
        return b"".join(chunks)


    def _with_extension(self, filename: str, mime_type: str) -> str:
        stem, ext = posixpath.splitext(filename)
        if ext.lower() in IMAGE_EXTS:
            return filename
        guessed = mimetypes.guess_extension(mime_type) or ".jpg"
        return f"{stem or 'image'}{guessed}"


    def _write(self, image: DownloadedImage) -> str:
        # 按 yyyy/mm 分目录，重名时追加 -1、-2 ...
        now = datetime.now(timezone.utc)
        subdir = f"{now:%Y}/{now:%m}"
        target_dir = self.uploads_dir / subdir
        target_dir.mkdir(parents=True, exist_ok=True)

        stem, ext = posixpath.splitext(image.filename)
        stem = sanitize_title(stem) or "image"
        candidate = f"{stem}{ext.lower()}"
        n = 1
        while (target_dir / candidate).exists():
            candidate = f"{stem}-{n}{ext.lower()}"
            n += 1

        with open(target_dir / candidate, "wb") as f:
            f.write(image.content)
        return posixpath.join(subdir, candidate)
