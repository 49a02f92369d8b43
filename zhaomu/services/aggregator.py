"""Load today's rows for a user and turn them into a ``DailySummary``."""

from __future__ import annotations

import asyncio
import datetime
import logging
from typing import Optional

from zhaomu.core.timezone_utils import local_now
from zhaomu.domain.models import DailySummary, Enrichment
from zhaomu.domain.summary import build_daily_summary, share_target_url
from zhaomu.domain.time_filter import TimeFilter
from zhaomu.services.stores import NoteStore, TodoStore

logger = logging.getLogger(__name__)


async def load_today_summary(
    todos: TodoStore,
    notes: NoteStore,
    *,
    tz_name: Optional[str],
    public_url: str,
    now: Optional[datetime.datetime] = None,
    enrichment: Optional[Enrichment] = None,
) -> DailySummary:
    """Fetch today's todos and notes (local day in ``tz_name``) and summarize them."""
    today = local_now(tz_name, now).date()
    gte, lte = TimeFilter(type="today").resolve(tz_name, now)
    todo_rows, note_rows = await asyncio.gather(todos.list(gte, lte), notes.list(gte, lte))
    logger.debug(
        "Loaded %d todos and %d notes for %s", len(todo_rows), len(note_rows), today.isoformat()
    )
    return build_daily_summary(
        today, todo_rows, note_rows, share_target_url(public_url), enrichment
    )
