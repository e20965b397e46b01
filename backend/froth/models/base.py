"""
基础模型模块

定义所有模型共用的工具函数。
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    获取当前 UTC 时间

    Returns:
        当前 UTC 时区的日期时间对象
    """
    return datetime.now(timezone.utc)


def parse_datetime(date_str: str | None) -> datetime | None:
    """解析服务商返回的 ISO 8601 日期时间字符串，无法解析时返回 None"""
    if not date_str:
        return None
    try:
        return datetime.fromisoformat(date_str.replace("Z", "+00:00"))
    except ValueError:
        return None


__all__ = ["parse_datetime", "utc_now"]
