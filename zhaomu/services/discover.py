"""Discover feeds: a random trending movie, a popular song and a daily quote.

Each lookup returns ``{"ok": True, "item": {...}}`` or
``{"ok": False, "reason": ..., "message": ...}``; failures are reported in the
body, never raised, so the page can show a friendly message per card.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any, Optional

import httpx

from zhaomu.core.exceptions import UpstreamError
from zhaomu.services.upstream import fetch_json

logger = logging.getLogger(__name__)

TMDB_TRENDING_URL = "https://api.themoviedb.org/3/trending/movie/day"
TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p/w500"
APPLE_MUSIC_FEED_URL = "https://rss.applemarketingtools.com/api/v2/{region}/music/most-played/50/songs.json"
HITOKOTO_URL = "https://v1.hitokoto.cn/"

DISCOVER_TIMEOUT_SECONDS = 12.0
DISCOVER_CACHE_TTL_SECONDS = 60

DiscoverResult = dict[str, Any]


def failure(reason: str, message: Optional[str] = None) -> DiscoverResult:
    result: DiscoverResult = {"ok": False, "reason": reason}
    if message:
        result["message"] = message
    return result


def success(item: dict[str, Any]) -> DiscoverResult:
    return {"ok": True, "item": item}


class DiscoverService:
    """Fetches discover items.

    Args:
        rng: Source of randomness for picking one entry from a feed
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self, rng: Optional[random.Random] = None, timeout: float = DISCOVER_TIMEOUT_SECONDS
    ) -> None:
        self._rng = rng or random.Random()
        self.timeout = timeout

    async def _guarded(self, name: str, lookup: Callable[[], Awaitable[DiscoverResult]]) -> DiscoverResult:
        try:
            return await lookup()
        except UpstreamError as e:
            logger.warning("Discover %s failed (%s): %s", name, e.reason, e)
            return failure(e.reason, str(e))
        except Exception as e:
            logger.exception("Unexpected error in discover %s", name)
            return failure("exception", str(e))

    def _pick(self, items: list[Any]) -> Optional[Any]:
        return self._rng.choice(items) if items else None

    async def movie(self, client: httpx.AsyncClient, api_key: Optional[str]) -> DiscoverResult:
        """Random entry from TMDB's daily trending movies."""
        if not api_key:
            return failure("missing_key", "请设置环境变量 TMDB_API_KEY")

        async def lookup() -> DiscoverResult:
            data = await fetch_json(
                client,
                TMDB_TRENDING_URL,
                params={"api_key": api_key},
                timeout=self.timeout,
                error_message_key="status_message",
            )
            results = data.get("results") if isinstance(data, dict) else None
            item = self._pick(results if isinstance(results, list) else [])
            if not isinstance(item, dict):
                return failure("no_data")
            poster_path = item.get("poster_path")
            return success(
                {
                    "id": item.get("id"),
                    "title": item.get("title") or item.get("name"),
                    "overview": item.get("overview"),
                    "poster_path": poster_path,
                    "poster": TMDB_IMAGE_BASE + poster_path if poster_path else None,
                }
            )

        return await self._guarded("movie", lookup)

    async def music(self, client: httpx.AsyncClient, region: str) -> DiscoverResult:
        """Random entry from the Apple Music most-played chart of ``region``."""

        async def lookup() -> DiscoverResult:
            data = await fetch_json(
                client,
                APPLE_MUSIC_FEED_URL.format(region=region),
                timeout=self.timeout,
                error_message_key="message",
            )
            feed = data.get("feed") if isinstance(data, dict) else None
            results = feed.get("results") if isinstance(feed, dict) else None
            item = self._pick(results if isinstance(results, list) else [])
            if not isinstance(item, dict):
                return failure("no_data", "暂无热门歌曲")
            return success(
                {
                    "name": item.get("name"),
                    "artist": item.get("artistName"),
                    "artwork": item.get("artworkUrl100") or item.get("artworkUrl"),
                    "url": item.get("url"),
                }
            )

        return await self._guarded("music", lookup)

    async def quote(self, client: httpx.AsyncClient) -> DiscoverResult:
        """Daily quote from hitokoto."""

        async def lookup() -> DiscoverResult:
            data = await fetch_json(
                client, HITOKOTO_URL, params={"encode": "json"}, timeout=self.timeout
            )
            if not isinstance(data, dict) or not data.get("hitokoto"):
                return failure("no_data")
            return success(
                {
                    "text": data.get("hitokoto"),
                    "from": data.get("from"),
                    "from_who": data.get("from_who"),
                }
            )

        return await self._guarded("quote", lookup)
