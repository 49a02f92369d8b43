"""Lunar calendar and almanac lookup (timelessq time API)."""

from __future__ import annotations

import datetime
import logging
from typing import Any, Optional

import httpx

from zhaomu.core.exceptions import UpstreamError
from zhaomu.services.upstream import fetch_json

logger = logging.getLogger(__name__)

CALENDAR_URL = "https://api.timelessq.com/time"
CALENDAR_TIMEOUT_SECONDS = 10.0
CALENDAR_CACHE_TTL_SECONDS = 3600


def _iso_date(data: dict[str, Any]) -> Optional[str]:
    try:
        return datetime.date(int(data["year"]), int(data["month"]), int(data["day"])).isoformat()
    except (KeyError, TypeError, ValueError):
        return None


def normalize_calendar(data: dict[str, Any]) -> dict[str, Any]:
    """Reduce the provider's ``data`` object to the calendar payload."""
    lunar = data.get("lunar") if isinstance(data.get("lunar"), dict) else {}
    almanac = data.get("almanac") if isinstance(data.get("almanac"), dict) else {}

    lunar_text = None
    if lunar:
        lunar_text = f"{lunar.get('cnYear', '')}年 {lunar.get('cnMonth', '')}{lunar.get('cnDay', '')}"

    festivals = data.get("festivals")
    return {
        "date": _iso_date(data),
        "week": data.get("cnWeek"),
        "lunar": lunar_text,
        "zodiac": lunar.get("zodiac"),
        "cyclical": {
            "year": lunar.get("cyclicalYear"),
            "month": lunar.get("cyclicalMonth"),
            "day": lunar.get("cyclicalDay"),
        },
        "solarTerms": lunar.get("solarTerms") or {},
        "almanac": {
            "yi": almanac.get("yi"),
            "ji": almanac.get("ji"),
            "chong": almanac.get("chong"),
            "sha": almanac.get("sha"),
        },
        "festivals": festivals if isinstance(festivals, list) else [],
    }


async def fetch_calendar(
    client: httpx.AsyncClient,
    day: Optional[datetime.date] = None,
    *,
    url: str = CALENDAR_URL,
    timeout: float = CALENDAR_TIMEOUT_SECONDS,
) -> dict[str, Any]:
    """Fetch lunar calendar data for ``day`` (provider's today when None).

    Raises:
        UpstreamError: transport failure or provider ``errno`` other than 0
    """
    params = {"datetime": day.isoformat()} if day else None
    body = await fetch_json(client, url, params=params, timeout=timeout)
    if not isinstance(body, dict) or body.get("errno") != 0:
        logger.warning("Calendar API returned errno %s", body.get("errno") if isinstance(body, dict) else None)
        raise UpstreamError("Calendar API 返回错误", payload=body)

    data = body.get("data")
    if not isinstance(data, dict):
        raise UpstreamError("Calendar API 返回错误", reason="parse_error", payload=body)
    return normalize_calendar(data)
