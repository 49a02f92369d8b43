"""Cached access to the weather, calendar and discover upstreams.

Used by the proxy routes and by the share card route, which draws weather
and almanac lines when they can be fetched.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional

import httpx

from zhaomu.core.config_manager import (
    DEFAULT_MUSIC_REGION,
    DEFAULT_QWEATHER_HOST,
    DEFAULT_QWEATHER_LOCATION,
    DEFAULT_TIMEZONE,
    DEFAULT_UPSTREAM_TIMEOUT,
    get_config_value,
)
from zhaomu.core.exceptions import ConfigurationError, ZhaomuError
from zhaomu.core.health_tracker import HealthTracker
from zhaomu.core.response_cache import ResponseCache
from zhaomu.domain.models import AlmanacSnapshot, Enrichment, WeatherSnapshot
from zhaomu.services import almanac, discover, weather

logger = logging.getLogger(__name__)

# Returns the shared client for a proxy URL (None for direct connections).
ClientFactory = Callable[[Optional[str]], Awaitable[httpx.AsyncClient]]

WEATHER_UNAVAILABLE = "天气信息获取失败，已省略天气"
CALENDAR_UNAVAILABLE = "万年历获取失败，已省略万年历"


class ContentService:
    """Weather, calendar and discover lookups with a TTL cache.

    Args:
        config: Application config dict
        client_factory: Supplies the shared httpx client for a proxy setting
        cache: Cache for successful payloads
        health_tracker: Records upstream outcomes for ``/api/health``
        discover_service: Discover feed client (injectable random source)
    """

    def __init__(
        self,
        config: Any,
        client_factory: ClientFactory,
        cache: ResponseCache,
        health_tracker: HealthTracker,
        discover_service: Optional[discover.DiscoverService] = None,
    ) -> None:
        self.config = config
        self._client_factory = client_factory
        self._cache = cache
        self._health = health_tracker
        timeout = float(get_config_value(config, "upstream_timeout", DEFAULT_UPSTREAM_TIMEOUT))
        self._discover = discover_service or discover.DiscoverService(timeout=timeout)

    def _proxy(self, specific_key: Optional[str] = None) -> Optional[str]:
        if specific_key:
            specific = get_config_value(self.config, specific_key)
            if specific:
                return specific
        return get_config_value(self.config, "http_proxy")

    async def _cached(
        self,
        name: str,
        params: dict[str, Any],
        ttl_seconds: float,
        fetch: Callable[[], Awaitable[dict[str, Any]]],
    ) -> dict[str, Any]:
        key = self._cache.generate_key(name, params)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            payload = await fetch()
        except ConfigurationError:
            raise
        except ZhaomuError as e:
            self._health.record_upstream(name, ok=False, error=str(e))
            raise
        self._health.record_upstream(name, ok=True)
        self._cache.set(key, payload, ttl_seconds)
        return payload

    async def weather(self, location: Optional[str] = None) -> dict[str, Any]:
        """Current weather for ``location`` (configured default when None)."""
        location = location or get_config_value(
            self.config, "qweather_default_location", DEFAULT_QWEATHER_LOCATION
        )
        client = await self._client_factory(self._proxy())

        async def fetch() -> dict[str, Any]:
            return await weather.fetch_weather_now(
                client,
                host=get_config_value(self.config, "qweather_host", DEFAULT_QWEATHER_HOST),
                api_key=get_config_value(self.config, "qweather_key"),
                location=location,
                tz_name=get_config_value(self.config, "timezone", DEFAULT_TIMEZONE),
            )

        return await self._cached(
            "qweather", {"location": location}, weather.WEATHER_CACHE_TTL_SECONDS, fetch
        )

    async def calendar(self, day: Optional[datetime.date] = None) -> dict[str, Any]:
        """Lunar calendar data for ``day`` (provider's today when None)."""
        client = await self._client_factory(self._proxy())

        async def fetch() -> dict[str, Any]:
            return await almanac.fetch_calendar(client, day)

        return await self._cached(
            "calendar",
            {"date": day.isoformat() if day else None},
            almanac.CALENDAR_CACHE_TTL_SECONDS,
            fetch,
        )

    async def _discover_cached(
        self, name: str, params: dict[str, Any], lookup: Callable[[], Awaitable[dict[str, Any]]]
    ) -> dict[str, Any]:
        key = self._cache.generate_key(name, params)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        result = await lookup()
        ok = bool(result.get("ok"))
        # A missing API key is a configuration state, not an upstream failure.
        if result.get("reason") != "missing_key":
            self._health.record_upstream(name, ok=ok, error=None if ok else result.get("reason"))
        if ok:
            self._cache.set(key, result, discover.DISCOVER_CACHE_TTL_SECONDS)
        return result

    async def movie(self) -> dict[str, Any]:
        client = await self._client_factory(self._proxy("tmdb_proxy"))
        return await self._discover_cached(
            "discover_movie",
            {},
            lambda: self._discover.movie(client, get_config_value(self.config, "tmdb_api_key")),
        )

    async def music(self) -> dict[str, Any]:
        region = get_config_value(self.config, "music_region", DEFAULT_MUSIC_REGION)
        client = await self._client_factory(self._proxy("music_proxy"))
        return await self._discover_cached(
            "discover_music", {"region": region}, lambda: self._discover.music(client, region)
        )

    async def quote(self) -> dict[str, Any]:
        client = await self._client_factory(self._proxy())
        return await self._discover_cached("discover_quote", {}, lambda: self._discover.quote(client))

    async def enrichment(
        self, day: datetime.date, location: Optional[str] = None
    ) -> tuple[Optional[Enrichment], list[str]]:
        """Weather and almanac snapshots for the card.

        Weather is skipped silently when no QWeather key is configured. Any
        other failure is logged and returned as a warning; it never fails the
        caller.

        Returns:
            (enrichment or None when nothing is available, warnings)
        """
        warnings: list[str] = []
        weather_snapshot: Optional[WeatherSnapshot] = None
        almanac_snapshot: Optional[AlmanacSnapshot] = None

        if get_config_value(self.config, "qweather_key"):
            try:
                weather_snapshot = WeatherSnapshot.from_payload(await self.weather(location))
            except ZhaomuError as e:
                logger.warning("Weather unavailable for share card: %s", e)
                warnings.append(WEATHER_UNAVAILABLE)

        try:
            almanac_snapshot = AlmanacSnapshot.from_payload(await self.calendar(day))
        except ZhaomuError as e:
            logger.warning("Calendar unavailable for share card: %s", e)
            warnings.append(CALENDAR_UNAVAILABLE)

        result = Enrichment(weather=weather_snapshot, almanac=almanac_snapshot)
        return (None if result.is_empty else result), warnings
