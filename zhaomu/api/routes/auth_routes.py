"""Sign-in routes: thin pass-through to Supabase auth."""

from __future__ import annotations

import logging
from typing import Any

from zhaomu.api.session import parse_body, require_user, supabase_for_request
from zhaomu.domain.requests import MagicLinkRequest

logger = logging.getLogger(__name__)


def register_auth_routes(app: Any, config: Any, client_factory: Any) -> None:
    """Register ``/api/auth/*`` routes.

    Args:
        app: aiohttp web application
        config: Application configuration
        client_factory: Supplies the shared httpx client
    """
    from aiohttp import web

    async def magic_link(request: Any) -> Any:
        body = await parse_body(request, MagicLinkRequest)
        db = await supabase_for_request(request, config, client_factory)
        await db.send_magic_link(body.email, body.redirect_to)
        return web.json_response({"sent": True, "message": "登录链接已发送，请查收邮箱"})

    async def session(request: Any) -> Any:
        _db, user = await require_user(request, config, client_factory)
        return web.json_response({"user": {"id": user.get("id"), "email": user.get("email")}})

    async def logout(request: Any) -> Any:
        db = await supabase_for_request(request, config, client_factory)
        await db.sign_out()
        return web.json_response({"signed_out": True})

    app.router.add_post("/api/auth/magic-link", magic_link)
    app.router.add_get("/api/auth/session", session)
    app.router.add_post("/api/auth/logout", logout)
