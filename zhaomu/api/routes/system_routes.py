"""Health and status routes."""

from __future__ import annotations

import logging
from typing import Any, Callable

from zhaomu.core.config_manager import get_config_value, is_supabase_configured

logger = logging.getLogger(__name__)


def register_system_routes(
    app: Any,
    config: Any,
    health_tracker: Any,
    time_provider: Callable[[], Any],
    get_system_diagnostics: Callable[[], Any],
    font_path_provider: Callable[[], Any],
) -> None:
    """Register ``GET /api/health``.

    Args:
        app: aiohttp web application
        config: Application configuration
        health_tracker: Health tracking instance
        time_provider: Returns the current UTC datetime
        get_system_diagnostics: Function to get system diagnostics
        font_path_provider: Returns the font file used by the renderer (None for the fallback)
    """
    from aiohttp import web

    async def health_check(_request: Any) -> Any:
        """Health check endpoint for monitoring system status."""
        now_iso = time_provider().replace(microsecond=0).isoformat().replace("+00:00", "Z")
        health_status = health_tracker.get_health_status(now_iso)
        diag = get_system_diagnostics()

        health_data = {
            "status": health_status.status,
            "server_time_iso": health_status.server_time_iso,
            "server_status": {
                "uptime_s": health_status.uptime_seconds,
                "pid": health_status.pid,
            },
            "config": {
                "supabase": is_supabase_configured(config),
                "qweather": bool(get_config_value(config, "qweather_key")),
                "tmdb": bool(get_config_value(config, "tmdb_api_key")),
                "font": font_path_provider(),
            },
            "render_status": {
                "renders_total": health_status.renders_total,
                "last_render_age_s": health_status.last_render_age_seconds,
                "last_render_ok": health_tracker.get_last_render_ok(),
                "last_render_notes": health_tracker.get_last_render_notes(),
            },
            "upstreams": health_status.upstreams,
            "system_diagnostics": {
                "platform": diag.platform,
                "python_version": diag.python_version,
                "event_loop_running": diag.event_loop_running,
            },
        }

        # Degraded upstreams only affect optional content; the service itself stays up.
        return web.json_response(health_data, status=200)

    app.router.add_get("/api/health", health_check)
