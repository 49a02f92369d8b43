"""aiohttp server for zhaomu: application factory and serve loop."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import random
import signal
from typing import Any, Optional

import httpx
from aiohttp import web

from zhaomu.core.config_manager import get_config_value, redact_config
from zhaomu.core.health_tracker import HealthTracker, get_system_diagnostics
from zhaomu.core.http_client import client_id_for_proxy, close_all_clients, get_shared_client
from zhaomu.core.log_config import configure_logging
from zhaomu.core.response_cache import ResponseCache
from zhaomu.core.timezone_utils import now_utc
from zhaomu.rendering.share_card import ShareCardRenderer
from zhaomu.services.content import ClientFactory, ContentService
from zhaomu.services.discover import DiscoverService

logger = logging.getLogger(__name__)

RESPONSE_CACHE_SIZE = 64


async def _default_client_factory(proxy: Optional[str]) -> httpx.AsyncClient:
    return await get_shared_client(client_id_for_proxy(proxy), proxy=proxy)


async def _make_app(
    config: Any,
    client_factory: Optional[ClientFactory] = None,
    response_cache: Optional[ResponseCache] = None,
    health_tracker: Optional[HealthTracker] = None,
    renderer: Optional[ShareCardRenderer] = None,
    rng: Optional[random.Random] = None,
    time_provider: Any = now_utc,
) -> web.Application:
    """Create the aiohttp application with every route wired to its dependencies.

    Every collaborator is injectable so tests can swap in mock transports, a
    seeded random source or a fixed clock.
    """
    from .middleware import correlation_id_middleware, error_middleware
    from .routes import (
        register_auth_routes,
        register_data_routes,
        register_proxy_routes,
        register_share_routes,
        register_system_routes,
    )

    app = web.Application(middlewares=[correlation_id_middleware, error_middleware])

    uses_shared_clients = client_factory is None
    client_factory = client_factory or _default_client_factory
    response_cache = response_cache or ResponseCache(max_size=RESPONSE_CACHE_SIZE)
    health_tracker = health_tracker or HealthTracker()
    renderer = renderer or ShareCardRenderer(font_path=get_config_value(config, "font_path"))

    timeout = float(get_config_value(config, "upstream_timeout", 12.0))
    content = ContentService(
        config,
        client_factory,
        response_cache,
        health_tracker,
        DiscoverService(rng=rng, timeout=timeout),
    )

    register_system_routes(
        app=app,
        config=config,
        health_tracker=health_tracker,
        time_provider=time_provider,
        get_system_diagnostics=get_system_diagnostics,
        font_path_provider=lambda: renderer.fonts.resolved_path,
    )
    register_auth_routes(app=app, config=config, client_factory=client_factory)
    register_data_routes(
        app=app, config=config, client_factory=client_factory, time_provider=time_provider
    )
    register_proxy_routes(app=app, config=config, content=content)
    register_share_routes(
        app=app,
        config=config,
        client_factory=client_factory,
        content=content,
        renderer=renderer,
        health_tracker=health_tracker,
        time_provider=time_provider,
    )

    app["health_tracker"] = health_tracker
    app["response_cache"] = response_cache

    if uses_shared_clients:

        async def _close_clients(_app: web.Application) -> None:
            try:
                await close_all_clients()
            except Exception as e:
                logger.warning("Error cleaning up shared HTTP clients: %s", e)

        app.on_cleanup.append(_close_clients)

    return app


async def _serve(config: Any) -> None:
    """Run the server until SIGINT/SIGTERM."""
    stop_event = asyncio.Event()

    logger.info(
        "Creating web application. Config summary: %s",
        ", ".join(f"{k}={v!r}" for k, v in sorted(redact_config(config).items())),
    )
    app = await _make_app(config)

    runner = web.AppRunner(app)
    await runner.setup()

    host = get_config_value(config, "server_bind", "0.0.0.0")  # nosec: B104 - default bind; override via env
    port = int(get_config_value(config, "server_port", 8080))

    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", host, port)
        await runner.cleanup()
        raise
    logger.info("Server started successfully on %s:%d (pid %d)", host, port, os.getpid())

    loop = asyncio.get_running_loop()

    def _on_signal() -> None:
        logger.info("Shutdown signal received")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, _on_signal)

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    await runner.cleanup()
    logger.info("Server shutdown complete")


def start_server(config: Any) -> None:
    """Start the asyncio event loop and HTTP server.

    Args:
        config: dict with keys produced by ``ConfigManager.build_config_from_env``:
            - server_bind / server_port: listen address
            - timezone: IANA zone used for "today" and time filters
            - public_url: base URL encoded in share card QR codes
            - font_path: optional CJK font for the card
            - supabase_url / supabase_anon_key: Supabase project
            - qweather_key, tmdb_api_key, ...: optional content upstreams
            - debug_logging: enable debug logging for zhaomu modules (bool)
    """
    configure_logging(debug_mode=bool(get_config_value(config, "debug_logging", False)))

    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
