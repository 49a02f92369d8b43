"""Timezone helpers for zhaomu.

Day boundaries ("today", "last 7 days") are computed in the configured local
timezone and converted to UTC for the ``created_at`` filters sent to the
database.
"""

from __future__ import annotations

import datetime
import logging
import zoneinfo
from functools import lru_cache

from zhaomu.core.config_manager import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)

_CN_WEEKDAYS = ("星期一", "星期二", "星期三", "星期四", "星期五", "星期六", "星期日")


@lru_cache(maxsize=16)
def resolve_timezone(tz_name: str | None) -> datetime.tzinfo:
    """Return the ZoneInfo for ``tz_name``, falling back to the default timezone.

    Unknown names are logged once (the result is cached) and replaced by
    ``Asia/Shanghai``.
    """
    name = tz_name or DEFAULT_TIMEZONE
    try:
        return zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; using %s", name, DEFAULT_TIMEZONE)
        return zoneinfo.ZoneInfo(DEFAULT_TIMEZONE)


def now_utc() -> datetime.datetime:
    """Current time as an aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def local_now(tz_name: str | None, now: datetime.datetime | None = None) -> datetime.datetime:
    """Return ``now`` (default: current time) converted to ``tz_name``."""
    reference = now or now_utc()
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=datetime.timezone.utc)
    return reference.astimezone(resolve_timezone(tz_name))


def day_bounds_utc(
    day: datetime.date, tz_name: str | None
) -> tuple[datetime.datetime, datetime.datetime]:
    """Return the UTC instants of the first and last microsecond of ``day`` in ``tz_name``."""
    tz = resolve_timezone(tz_name)
    start = datetime.datetime.combine(day, datetime.time.min, tzinfo=tz)
    end = datetime.datetime.combine(day, datetime.time.max, tzinfo=tz)
    return start.astimezone(datetime.timezone.utc), end.astimezone(datetime.timezone.utc)


def to_iso_utc(value: datetime.datetime) -> str:
    """Serialize an aware datetime as an ISO 8601 UTC string with a ``Z`` suffix."""
    return value.astimezone(datetime.timezone.utc).isoformat().replace("+00:00", "Z")


def format_cn_date_label(day: datetime.date) -> str:
    """Format ``day`` as ``2024年05月01日 星期三``."""
    return f"{day.year:04d}年{day.month:02d}月{day.day:02d}日 {_CN_WEEKDAYS[day.weekday()]}"


def format_local_timestamp(raw: str | None, tz_name: str | None) -> str | None:
    """Render an ISO timestamp as ``YYYY-MM-DD HH:MM`` in ``tz_name``.

    Returns None for missing input; unparseable strings are returned with the
    ``T`` separator and zone suffix stripped.
    """
    if not raw or not isinstance(raw, str):
        return None
    try:
        parsed = datetime.datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        cleaned = raw.replace("T", " ")
        if cleaned.endswith("Z"):
            return cleaned[:-1]
        if len(cleaned) > 6 and cleaned[-6] in "+-" and cleaned[-3] == ":":
            return cleaned[:-6]
        return cleaned
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed.astimezone(resolve_timezone(tz_name)).strftime("%Y-%m-%d %H:%M")
