"""Todos, notes and today's summary for the signed-in user."""

from __future__ import annotations

import logging
from typing import Any

from zhaomu.api.session import parse_body, require_user
from zhaomu.core.config_manager import DEFAULT_PUBLIC_URL, DEFAULT_TIMEZONE, get_config_value
from zhaomu.domain.requests import NoteCreate, TodoCreate, TodoUpdate
from zhaomu.domain.summary import summary_to_dict
from zhaomu.domain.time_filter import TimeFilter
from zhaomu.services.aggregator import load_today_summary
from zhaomu.services.stores import NoteStore, TodoStore

logger = logging.getLogger(__name__)


def register_data_routes(app: Any, config: Any, client_factory: Any, time_provider: Any) -> None:
    """Register ``/api/todos``, ``/api/notes`` and ``/api/today``.

    Args:
        app: aiohttp web application
        config: Application configuration
        client_factory: Supplies the shared httpx client
        time_provider: Returns the current UTC datetime
    """
    from aiohttp import web

    tz_name = get_config_value(config, "timezone", DEFAULT_TIMEZONE)

    def _bounds(request: Any) -> tuple[Any, Any]:
        time_filter = TimeFilter.from_query(
            request.query.get("range"), request.query.get("start"), request.query.get("end")
        )
        return time_filter.resolve(tz_name, time_provider())

    async def _todo_store(request: Any) -> TodoStore:
        db, user = await require_user(request, config, client_factory)
        return TodoStore(db, str(user["id"]))

    async def _note_store(request: Any) -> NoteStore:
        db, user = await require_user(request, config, client_factory)
        return NoteStore(db, str(user["id"]))

    async def list_todos(request: Any) -> Any:
        gte, lte = _bounds(request)
        store = await _todo_store(request)
        return web.json_response({"todos": await store.list(gte, lte)})

    async def create_todo(request: Any) -> Any:
        body = await parse_body(request, TodoCreate)
        store = await _todo_store(request)
        row = await store.add(body.title)
        logger.info("Todo created")
        return web.json_response({"todo": row}, status=201)

    async def update_todo(request: Any) -> Any:
        body = await parse_body(request, TodoUpdate)
        store = await _todo_store(request)
        row = await store.set_complete(request.match_info["todo_id"], body.is_complete)
        return web.json_response({"todo": row})

    async def delete_todo(request: Any) -> Any:
        store = await _todo_store(request)
        await store.remove(request.match_info["todo_id"])
        return web.json_response({"deleted": True})

    async def list_notes(request: Any) -> Any:
        gte, lte = _bounds(request)
        store = await _note_store(request)
        return web.json_response({"notes": await store.list(gte, lte)})

    async def create_note(request: Any) -> Any:
        body = await parse_body(request, NoteCreate)
        store = await _note_store(request)
        row = await store.add(body.content)
        logger.info("Note created")
        return web.json_response({"note": row}, status=201)

    async def delete_note(request: Any) -> Any:
        store = await _note_store(request)
        await store.remove(request.match_info["note_id"])
        return web.json_response({"deleted": True})

    async def today(request: Any) -> Any:
        db, user = await require_user(request, config, client_factory)
        user_id = str(user["id"])
        summary = await load_today_summary(
            TodoStore(db, user_id),
            NoteStore(db, user_id),
            tz_name=tz_name,
            public_url=get_config_value(config, "public_url", DEFAULT_PUBLIC_URL),
            now=time_provider(),
        )
        return web.json_response(summary_to_dict(summary))

    app.router.add_get("/api/todos", list_todos)
    app.router.add_post("/api/todos", create_todo)
    app.router.add_patch("/api/todos/{todo_id}", update_todo)
    app.router.add_delete("/api/todos/{todo_id}", delete_todo)
    app.router.add_get("/api/notes", list_notes)
    app.router.add_post("/api/notes", create_note)
    app.router.add_delete("/api/notes/{note_id}", delete_note)
    app.router.add_get("/api/today", today)
