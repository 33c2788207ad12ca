"""时间工具."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """当前 UTC 时间（带时区）."""
    return datetime.now(timezone.utc)


def to_utc_iso(value: datetime | None) -> str | None:
    """
    序列化为带时区偏移的 ISO 8601 字符串.

    SQLite 读回的时间不带时区，按 UTC 处理。
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()
