"""Weather, calendar and discover proxy routes.

The weather and calendar routes answer ``{"error": ...}`` with status 500 on
any failure, which is what the browser cards check for. Discover routes always
answer 200 and report failures in the body.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any

from zhaomu.core.config_manager import DEFAULT_QWEATHER_LOCATION, get_config_value
from zhaomu.core.exceptions import RequestValidationError, ZhaomuError
from zhaomu.services.weather import resolve_location

logger = logging.getLogger(__name__)


def register_proxy_routes(app: Any, config: Any, content: Any) -> None:
    """Register ``/api/qweather``, ``/api/calendar`` and ``/api/discover/*``.

    Args:
        app: aiohttp web application
        config: Application configuration
        content: ``ContentService`` performing the cached upstream calls
    """
    from aiohttp import web

    async def qweather(request: Any) -> Any:
        location = resolve_location(
            request.query.get("location"),
            request.query.get("lat"),
            request.query.get("lon"),
            get_config_value(config, "qweather_default_location", DEFAULT_QWEATHER_LOCATION),
        )
        try:
            payload = await content.weather(location)
        except ZhaomuError as e:
            body: dict[str, Any] = {"error": str(e)}
            if getattr(e, "payload", None) is not None:
                body["data"] = e.payload
            return web.json_response(body, status=500)
        return web.json_response(payload)

    async def calendar(request: Any) -> Any:
        raw_date = request.query.get("date")
        day = None
        if raw_date:
            try:
                day = datetime.date.fromisoformat(raw_date)
            except ValueError:
                raise RequestValidationError("date must be a YYYY-MM-DD date") from None
        try:
            payload = await content.calendar(day)
        except ZhaomuError as e:
            body: dict[str, Any] = {"error": str(e)}
            if getattr(e, "payload", None) is not None:
                body["data"] = e.payload
            return web.json_response(body, status=500)
        return web.json_response(payload)

    async def discover_movie(_request: Any) -> Any:
        return web.json_response(await content.movie())

    async def discover_music(_request: Any) -> Any:
        return web.json_response(await content.music())

    async def discover_quote(_request: Any) -> Any:
        return web.json_response(await content.quote())

    app.router.add_get("/api/qweather", qweather)
    app.router.add_get("/api/calendar", calendar)
    app.router.add_get("/api/discover/movie", discover_movie)
    app.router.add_get("/api/discover/music", discover_music)
    app.router.add_get("/api/discover/quote", discover_quote)
