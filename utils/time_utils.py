# utils/time_utils.py
from datetime import datetime, timezone, timedelta
from zoneinfo import ZoneInfo


def as_utc(value):
    """数据库里的时间按 UTC 存（无时区），读出来补上 UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_naive_utc(value):
    return as_utc(value).replace(tzinfo=None)


def parse_datetime(value):
    """前端传来的 ISO 字符串 → 无时区 UTC；空值返回 None，格式不对抛 ValueError"""
    if value in (None, ''):
        return None
    if isinstance(value, datetime):
        return to_naive_utc(value)
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return to_naive_utc(datetime.fromisoformat(text))


def local_date(value, tz):
    return as_utc(value).astimezone(tz).date()


def day_difference(due, now, tz):
    """按参考时区的日历日计算 due - now 相差几天"""
    return (local_date(due, tz) - local_date(now, tz)).days


def local_day_start_utc(now, tz, offset_days=0):
    """参考时区某天 00:00 对应的 UTC（无时区）"""
    day = local_date(now, tz) + timedelta(days=offset_days)
    start = datetime(day.year, day.month, day.day, tzinfo=tz)
    return to_naive_utc(start)


def get_zone(name):
    return ZoneInfo(name)
