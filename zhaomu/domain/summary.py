"""Aggregation of store rows into a ``DailySummary``.

The functions here are pure: stores and proxies fetch the data, this module
only normalizes rows and computes counts over the full lists.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from zhaomu.core.timezone_utils import format_cn_date_label
from zhaomu.domain.models import (
    DailySummary,
    Enrichment,
    NoteItem,
    TodoItem,
    TodoStats,
)

logger = logging.getLogger(__name__)

SHARE_PAGE_PATH = "/zhaomu"


def todo_from_row(row: Mapping[str, Any]) -> TodoItem:
    """Convert a ``todos`` row (``title``, ``is_complete``) to a ``TodoItem``."""
    return TodoItem(title=str(row.get("title") or ""), done=bool(row.get("is_complete")))


def note_from_row(row: Mapping[str, Any]) -> NoteItem:
    """Convert a ``daily_notes`` row (``content``) to a ``NoteItem``."""
    return NoteItem(text=str(row.get("content") or ""))


def _sort_recent_first(rows: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    # ISO 8601 strings in the same zone sort chronologically; rows without a
    # timestamp keep their relative order at the end.
    rows = list(rows)
    with_ts = [r for r in rows if r.get("created_at")]
    without_ts = [r for r in rows if not r.get("created_at")]
    with_ts.sort(key=lambda r: str(r.get("created_at")), reverse=True)
    return with_ts + without_ts


def share_target_url(public_url: str, path: str = SHARE_PAGE_PATH) -> str:
    """Absolute URL the card's scannable code points at."""
    return public_url.rstrip("/") + path


def build_daily_summary(
    day: datetime.date,
    todo_rows: Iterable[Mapping[str, Any]],
    note_rows: Iterable[Mapping[str, Any]],
    target_url: str,
    enrichment: Optional[Enrichment] = None,
) -> DailySummary:
    """Build the summary for ``day`` from raw todo/note rows.

    Rows are ordered most-recent-first by ``created_at``. Counts are taken
    over every row, independent of how many items the card later shows.
    """
    todos = tuple(todo_from_row(r) for r in _sort_recent_first(todo_rows))
    notes = tuple(note_from_row(r) for r in _sort_recent_first(note_rows))

    if enrichment is not None and enrichment.is_empty:
        enrichment = None

    summary = DailySummary(
        date_label=format_cn_date_label(day),
        todos=todos,
        notes=notes,
        todo_stats=TodoStats.from_items(todos),
        note_count=len(notes),
        share_target_url=target_url,
        enrichment=enrichment,
    )
    logger.debug(
        "Built daily summary for %s: %d/%d todos done, %d notes, enrichment=%s",
        day.isoformat(),
        summary.todo_stats.completed,
        summary.todo_stats.total,
        summary.note_count,
        enrichment is not None,
    )
    return summary


def summary_to_dict(summary: DailySummary) -> dict[str, Any]:
    """JSON-friendly view of a summary (used by ``GET /api/today``)."""
    return {
        "date_label": summary.date_label,
        "todos": [{"title": t.title, "done": t.done} for t in summary.todos],
        "notes": [{"text": n.text} for n in summary.notes],
        "todo_stats": {
            "completed": summary.todo_stats.completed,
            "total": summary.todo_stats.total,
        },
        "note_count": summary.note_count,
        "share_target_url": summary.share_target_url,
    }
