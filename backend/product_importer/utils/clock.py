from __future__ import annotations
from datetime import date, datetime, time, timezone
from typing import Any, Optional
import pytz

from product_importer.core.config import settings


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def store_tz():
    return pytz.timezone(settings.STORE_TIMEZONE or "UTC")


def _from_string(s: str) -> datetime:
    if s.lstrip("-").isdigit():
        return datetime.fromtimestamp(int(s), tz=timezone.utc)
    # fromisoformat 不认 "Z" 后缀（3.10 及以前）
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    return datetime.fromisoformat(s)


def parse_store_datetime(value: Any) -> Optional[datetime]:
    """
    促销日期等"店铺本地时间"字段：
    - None / "" -> None
    - int / 数字串 -> UNIX 时间戳（UTC）
    - 不带时区的字符串 / datetime -> 按 STORE_TIMEZONE 解释
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("boolean is not a date")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    else:
        s = str(value).strip()
        if not s:
            return None
        dt = _from_string(s)
    if dt.tzinfo is None:
        dt = store_tz().localize(dt)   # pytz 必须用 localize 才有正确的 DST 偏移
    return dt


def parse_gmt_datetime(value: Any) -> Optional[datetime]:
    """GMT 字段：不带时区的时间一律当作 UTC 的绝对时刻。"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value).strip()
        if not s:
            return None
        dt = _from_string(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
