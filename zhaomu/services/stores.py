"""Per-user access to the ``todos`` and ``daily_notes`` tables."""

from __future__ import annotations

import logging
from typing import Any, Optional

from zhaomu.core.exceptions import NotFoundError
from zhaomu.services.supabase_client import Filter, SupabaseClient

logger = logging.getLogger(__name__)

TODOS_TABLE = "todos"
NOTES_TABLE = "daily_notes"
RECENT_FIRST = "created_at.desc"


def _owned_filters(
    user_id: str, gte: Optional[str] = None, lte: Optional[str] = None
) -> list[Filter]:
    filters: list[Filter] = [("user_id", "eq", user_id)]
    if gte:
        filters.append(("created_at", "gte", gte))
    if lte:
        filters.append(("created_at", "lte", lte))
    return filters


class _UserTable:
    table = ""

    def __init__(self, db: SupabaseClient, user_id: str) -> None:
        self._db = db
        self.user_id = user_id

    async def list(self, gte: Optional[str] = None, lte: Optional[str] = None) -> list[dict[str, Any]]:
        """Rows of the user, most recent first, optionally bounded by ``created_at``."""
        rows = await self._db.select(
            self.table, _owned_filters(self.user_id, gte, lte), order=RECENT_FIRST
        )
        logger.debug("Loaded %d rows from %s", len(rows), self.table)
        return rows

    async def remove(self, row_id: str) -> None:
        deleted = await self._db.delete(
            self.table, [("id", "eq", row_id), ("user_id", "eq", self.user_id)]
        )
        if not deleted:
            raise NotFoundError(f"{self.table} {row_id} not found")


class TodoStore(_UserTable):
    table = TODOS_TABLE

    async def add(self, title: str) -> dict[str, Any]:
        return await self._db.insert(self.table, {"title": title, "user_id": self.user_id})

    async def set_complete(self, todo_id: str, is_complete: bool) -> dict[str, Any]:
        rows = await self._db.update(
            self.table,
            [("id", "eq", todo_id), ("user_id", "eq", self.user_id)],
            {"is_complete": is_complete},
        )
        if not rows:
            raise NotFoundError(f"todo {todo_id} not found")
        return rows[0]


class NoteStore(_UserTable):
    table = NOTES_TABLE

    async def add(self, content: str) -> dict[str, Any]:
        return await self._db.insert(self.table, {"content": content, "user_id": self.user_id})
