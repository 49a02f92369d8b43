"""Current weather from QWeather."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from zhaomu.core.exceptions import ConfigurationError, RequestValidationError, UpstreamError
from zhaomu.core.timezone_utils import format_local_timestamp
from zhaomu.services.upstream import fetch_json

logger = logging.getLogger(__name__)

WEATHER_NOW_PATH = "/v7/weather/now"
WEATHER_TIMEOUT_SECONDS = 10.0
WEATHER_CACHE_TTL_SECONDS = 600

NOW_FIELDS = (
    "temp",
    "feelsLike",
    "text",
    "windDir",
    "windScale",
    "windSpeed",
    "humidity",
    "precip",
    "pressure",
    "vis",
    "cloud",
    "dew",
    "obsTime",
)


def resolve_location(
    location: Optional[str], lat: Optional[str], lon: Optional[str], default: str
) -> str:
    """Pick the QWeather location parameter.

    Coordinates win over an explicit location id and are sent as ``lon,lat``
    with two decimals, the form QWeather expects.

    Raises:
        RequestValidationError: only one coordinate given, or not a number
    """
    if lat or lon:
        if not (lat and lon):
            raise RequestValidationError("lat and lon must be given together")
        try:
            lat_f, lon_f = float(lat), float(lon)
        except ValueError:
            raise RequestValidationError("lat and lon must be numbers") from None
        if not (-90.0 <= lat_f <= 90.0 and -180.0 <= lon_f <= 180.0):
            raise RequestValidationError("lat/lon out of range")
        return f"{lon_f:.2f},{lat_f:.2f}"
    return location or default


async def fetch_weather_now(
    client: httpx.AsyncClient,
    *,
    host: str,
    api_key: Optional[str],
    location: str,
    timeout: float = WEATHER_TIMEOUT_SECONDS,
    tz_name: Optional[str] = None,
) -> dict[str, Any]:
    """Fetch current conditions for ``location``.

    Returns:
        ``{"now": {...}, "updateTime": ..., "updateTimeText": ..., "fxLink": ...}``;
        ``updateTimeText`` is ``updateTime`` as ``YYYY-MM-DD HH:MM`` in ``tz_name``

    Raises:
        ConfigurationError: no API key configured
        UpstreamError: transport failure or QWeather ``code`` other than "200"
    """
    if not api_key:
        raise ConfigurationError("QWeather 未配置，请设置环境变量 QWEATHER_KEY")

    data = await fetch_json(
        client,
        host.rstrip("/") + WEATHER_NOW_PATH,
        params={"key": api_key, "location": location},
        timeout=timeout,
    )
    if not isinstance(data, dict) or data.get("code") != "200":
        code = data.get("code") if isinstance(data, dict) else None
        logger.warning("QWeather returned code %s for location %s", code, location)
        raise UpstreamError("QWeather 返回错误", payload=data)

    now = data.get("now") if isinstance(data.get("now"), dict) else {}
    return {
        "now": {field: now.get(field) for field in NOW_FIELDS},
        "updateTime": data.get("updateTime"),
        "updateTimeText": format_local_timestamp(data.get("updateTime"), tz_name),
        "fxLink": data.get("fxLink"),
    }
