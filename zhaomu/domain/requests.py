"""Pydantic models for request validation."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from zhaomu.core.config_manager import (
    MAX_NOTE_CONTENT_LENGTH,
    MAX_SUMMARY_ITEMS,
    MAX_TODO_TITLE_LENGTH,
)
from zhaomu.domain.models import (
    AlmanacSnapshot,
    DailySummary,
    Enrichment,
    NoteItem,
    TodoItem,
    TodoStats,
    WeatherSnapshot,
)


def _strip_required(value: str, field_name: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError(f"{field_name} must not be empty")
    return stripped


class TodoCreate(BaseModel):
    title: str = Field(..., max_length=MAX_TODO_TITLE_LENGTH)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return _strip_required(v, "title")


class TodoUpdate(BaseModel):
    is_complete: bool


class NoteCreate(BaseModel):
    content: str = Field(..., max_length=MAX_NOTE_CONTENT_LENGTH)

    @field_validator("content")
    @classmethod
    def strip_content(cls, v: str) -> str:
        return _strip_required(v, "content")


class MagicLinkRequest(BaseModel):
    """E-mail sign-in request.

    Attributes:
        email: Address the sign-in link is sent to
        redirect_to: Optional URL the link returns to after sign-in
    """

    email: str = Field(..., max_length=320)
    redirect_to: Optional[str] = Field(None, max_length=2048)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        trimmed = v.strip()
        if "@" not in trimmed or "." not in trimmed:
            raise ValueError("请输入有效的邮箱地址")
        return trimmed


class TodoEntry(BaseModel):
    title: str
    done: bool = False


class NoteEntry(BaseModel):
    text: str


class TodoStatsModel(BaseModel):
    completed: int = Field(0, ge=0)
    total: int = Field(0, ge=0)

    @model_validator(mode="after")
    def completed_within_total(self) -> TodoStatsModel:
        if self.completed > self.total:
            raise ValueError("todo_stats.completed cannot exceed todo_stats.total")
        return self


class ShareCardRequest(BaseModel):
    """Body of ``POST /api/share-card``.

    ``todo_stats`` and ``note_count`` default to counts over the posted lists
    when omitted. ``weather`` and ``calendar`` accept the payloads returned by
    the ``/api/qweather`` and ``/api/calendar`` proxies.
    """

    date_label: str = Field(..., min_length=1, max_length=64)
    todos: list[TodoEntry] = Field(default_factory=list, max_length=MAX_SUMMARY_ITEMS)
    notes: list[NoteEntry] = Field(default_factory=list, max_length=MAX_SUMMARY_ITEMS)
    todo_stats: Optional[TodoStatsModel] = None
    note_count: Optional[int] = Field(None, ge=0)
    share_target_url: str = Field(..., min_length=1, max_length=2048)
    weather: Optional[dict[str, Any]] = None
    calendar: Optional[dict[str, Any]] = None

    @field_validator("share_target_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("share_target_url must be an absolute http(s) URL")
        return v

    def to_summary(self) -> DailySummary:
        todos = tuple(TodoItem(title=t.title, done=t.done) for t in self.todos)
        notes = tuple(NoteItem(text=n.text) for n in self.notes)
        stats = (
            TodoStats(completed=self.todo_stats.completed, total=self.todo_stats.total)
            if self.todo_stats is not None
            else TodoStats.from_items(todos)
        )
        enrichment = Enrichment(
            weather=WeatherSnapshot.from_payload(self.weather),
            almanac=AlmanacSnapshot.from_payload(self.calendar),
        )
        return DailySummary(
            date_label=self.date_label,
            todos=todos,
            notes=notes,
            todo_stats=stats,
            note_count=self.note_count if self.note_count is not None else len(notes),
            share_target_url=self.share_target_url,
            enrichment=None if enrichment.is_empty else enrichment,
        )
