"""
文本 / 数值规范化工具（纯函数）：slug、HTML 过滤、金额与库存数量格式。
"""
from __future__ import annotations
from decimal import Decimal, InvalidOperation
from typing import Any, Union
from urllib.parse import unquote, urlparse
import posixpath
import re
import unicodedata

from bs4 import BeautifulSoup


_DANGEROUS_TAGS = ["script", "style", "iframe", "object", "embed"]
_TAG_RE = re.compile(r"<[^>]*?>")
_WS_RE = re.compile(r"[\r\n\t ]+")


def strip_tags(value: Any) -> str:
    if value is None:
        return ""
    return _TAG_RE.sub("", str(value))


def sanitize_title(value: Any) -> str:
    """
    Lower-case, dash separated slug.  "Deep Blue / XL" -> "deep-blue-xl"
    """
    s = strip_tags(value).strip()
    if not s:
        return ""
    s = unicodedata.normalize("NFKD", s)
    s = s.encode("ascii", "ignore").decode("ascii").lower()
    s = re.sub(r"[^a-z0-9_\-]+", "-", s)
    s = re.sub(r"-{2,}", "-", s)
    return s.strip("-")


def sanitize_term_text(value: Any) -> str:
    """Term names keep their case; only markup and surrounding whitespace go."""
    return strip_tags(value).strip()


def clean_text(value: Any) -> str:
    # 单行字段（SKU 等）：去标签、压缩空白
    return _WS_RE.sub(" ", strip_tags(value)).strip()


def filter_post_html(value: Any) -> str:
    """Keep post HTML but drop executable elements and inline event handlers."""
    if value is None:
        return ""
    soup = BeautifulSoup(str(value), "html.parser")
    for tag in soup.find_all(_DANGEROUS_TAGS):
        tag.decompose()
    for tag in soup.find_all(True):
        for attr in [a for a in tag.attrs if a.lower().startswith("on")]:
            del tag[attr]
    return str(soup)


def filename_from_url(url: Any) -> str:
    if not url:
        return ""
    path = urlparse(str(url)).path
    return unquote(posixpath.basename(path.rstrip("/")))


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    s = str(value or "").strip().lower()
    return s in ("1", "yes", "true")


def format_decimal(value: Any) -> str:
    """
    金额/尺寸统一存字符串："" 表示空；非法输入也归为 ""。
    不做四舍五入和去零（"10.00" 原样保留）。
    """
    if value is None:
        return ""
    if isinstance(value, Decimal):
        return str(value) if value.is_finite() else ""
    s = str(value).strip().replace(",", ".")
    s = re.sub(r"[^0-9.\-]", "", s)
    if not s:
        return ""
    try:
        Decimal(s)
    except (InvalidOperation, ValueError):
        return ""
    return s


def absint(value: Any, *, strict: bool = False) -> int:
    """
    Non-negative integer: None / "" -> 0, "-5" -> 5, "3.7" -> 3.
    Unparsable input gives 0, or raises ValueError when strict.
    """
    if value in (None, ""):
        return 0
    try:
        return abs(int(float(value)))
    except (TypeError, ValueError):
        if strict:
            raise ValueError(f"not an integer: {value!r}")
        return 0


def stock_amount(value: Any, *, as_float: bool = False) -> Union[int, float]:
    """Store convention for stock quantities: whole numbers unless configured otherwise."""
    try:
        f = float(str(value).strip()) if value not in (None, "") else 0.0
    except (TypeError, ValueError):
        f = 0.0
    return f if as_float else int(f)
