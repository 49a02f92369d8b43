"""Share card delivery.

``format=png`` (default) answers with the PNG itself; ``format=datauri``
answers with JSON carrying a ``data:image/png;base64,...`` URI. ``download=1``
adds a ``Content-Disposition: attachment`` header with the dated file name.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

from zhaomu.api.session import parse_body, require_user
from zhaomu.core.config_manager import DEFAULT_PUBLIC_URL, DEFAULT_TIMEZONE, get_config_value
from zhaomu.core.exceptions import RequestValidationError
from zhaomu.core.timezone_utils import local_now
from zhaomu.domain.models import DailySummary, RenderedCard
from zhaomu.domain.requests import ShareCardRequest
from zhaomu.services.aggregator import load_today_summary
from zhaomu.services.stores import NoteStore, TodoStore

logger = logging.getLogger(__name__)

_FORMATS = ("png", "datauri")
_TRUTHY = ("1", "true", "yes")


def _content_disposition(filename: str) -> str:
    # ASCII fallback for old clients plus the RFC 5987 UTF-8 form.
    ascii_name = filename.encode("ascii", "ignore").decode("ascii").lstrip("_") or "card.png"
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


def register_share_routes(
    app: Any,
    config: Any,
    client_factory: Any,
    content: Any,
    renderer: Any,
    health_tracker: Any,
    time_provider: Any,
) -> None:
    """Register ``/api/share-card`` routes.

    Args:
        app: aiohttp web application
        config: Application configuration
        client_factory: Supplies the shared httpx client
        content: ``ContentService`` used for weather/almanac enrichment
        renderer: ``ShareCardRenderer`` instance
        health_tracker: Health tracking instance
        time_provider: Returns the current UTC datetime
    """
    from aiohttp import web

    tz_name = get_config_value(config, "timezone", DEFAULT_TIMEZONE)

    def _options(request: Any) -> tuple[str, bool]:
        fmt = request.query.get("format", "png").lower()
        if fmt not in _FORMATS:
            raise RequestValidationError(f"format must be one of {', '.join(_FORMATS)}")
        download = request.query.get("download", "0").lower() in _TRUTHY
        return fmt, download

    async def _render(summary: DailySummary) -> RenderedCard:
        loop = asyncio.get_running_loop()
        try:
            card = await loop.run_in_executor(None, renderer.render, summary)
        except Exception as e:
            health_tracker.record_render(ok=False, notes=str(e))
            raise
        health_tracker.record_render(
            ok=card.code_embedded, notes="; ".join(card.warnings) or None
        )
        return card

    def _respond(card: RenderedCard, fmt: str, download: bool, extra_warnings: list[str]) -> Any:
        filename = RenderedCard.download_filename(local_now(tz_name, time_provider()).date())
        warnings = [*extra_warnings, *card.warnings]

        if fmt == "datauri":
            return web.json_response(
                {
                    "data_uri": card.data_uri,
                    "width": card.pixel_width,
                    "height": card.pixel_height,
                    "code_embedded": card.code_embedded,
                    "warnings": warnings,
                    "filename": filename,
                }
            )

        headers = {
            "Cache-Control": "no-store",
            "X-Code-Embedded": "1" if card.code_embedded else "0",
            "X-Warning-Count": str(len(warnings)),
        }
        if download:
            headers["Content-Disposition"] = _content_disposition(filename)
        return web.Response(body=card.image_bytes, content_type=card.mime_type, headers=headers)

    async def share_card(request: Any) -> Any:
        fmt, download = _options(request)
        body = await parse_body(request, ShareCardRequest)
        card = await _render(body.to_summary())
        return _respond(card, fmt, download, [])

    async def share_card_today(request: Any) -> Any:
        fmt, download = _options(request)
        db, user = await require_user(request, config, client_factory)
        now = time_provider()

        warnings: list[str] = []
        enrichment = None
        if request.query.get("enrich", "1").lower() in _TRUTHY:
            enrichment, warnings = await content.enrichment(
                local_now(tz_name, now).date(), request.query.get("location")
            )

        user_id = str(user["id"])
        summary = await load_today_summary(
            TodoStore(db, user_id),
            NoteStore(db, user_id),
            tz_name=tz_name,
            public_url=get_config_value(config, "public_url", DEFAULT_PUBLIC_URL),
            now=now,
            enrichment=enrichment,
        )
        card = await _render(summary)
        return _respond(card, fmt, download, warnings)

    app.router.add_post("/api/share-card", share_card)
    app.router.add_get("/api/share-card/today", share_card_today)
