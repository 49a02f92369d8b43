"""Value types shared by the aggregator, the renderer and the HTTP layer.

Everything here is immutable. ``DailySummary`` is the only input of the share
card renderer and ``RenderedCard`` its only output.
"""

from __future__ import annotations

import base64
import datetime
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class TodoItem:
    title: str
    done: bool = False


@dataclass(frozen=True)
class NoteItem:
    text: str


@dataclass(frozen=True)
class TodoStats:
    """Completed/total counters computed over the untruncated todo list."""

    completed: int = 0
    total: int = 0

    def __post_init__(self) -> None:
        if self.completed < 0 or self.total < 0:
            raise ValueError("todo counts must be non-negative")
        if self.completed > self.total:
            raise ValueError(
                f"completed ({self.completed}) cannot exceed total ({self.total})"
            )

    @classmethod
    def from_items(cls, items: tuple[TodoItem, ...] | list[TodoItem]) -> TodoStats:
        return cls(completed=sum(1 for t in items if t.done), total=len(items))


@dataclass(frozen=True)
class WeatherSnapshot:
    """Current conditions from the weather proxy; every field may be absent."""

    text: Optional[str] = None
    temp: Optional[str] = None
    feels_like: Optional[str] = None
    wind_dir: Optional[str] = None
    wind_scale: Optional[str] = None
    humidity: Optional[str] = None
    update_time: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Optional[dict[str, Any]]) -> Optional[WeatherSnapshot]:
        """Build a snapshot from the ``/api/qweather`` payload, or None if unusable."""
        if not isinstance(payload, dict) or payload.get("error"):
            return None
        now = payload.get("now")
        if not isinstance(now, dict):
            return None

        def _str(key: str) -> Optional[str]:
            value = now.get(key)
            return None if value is None or value == "" else str(value)

        return cls(
            text=_str("text"),
            temp=_str("temp"),
            feels_like=_str("feelsLike"),
            wind_dir=_str("windDir"),
            wind_scale=_str("windScale"),
            humidity=_str("humidity"),
            update_time=payload.get("updateTime") if isinstance(payload.get("updateTime"), str) else None,
        )

    def summary_line(self) -> str:
        """One-line description; missing fields render as ``-``."""
        return (
            f"{self.text or '-'} {self.temp or '-'}℃ 体感 {self.feels_like or '-'}℃ "
            f"风向 {self.wind_dir or '-'} 风力 {self.wind_scale or '-'}"
        )


@dataclass(frozen=True)
class AlmanacSnapshot:
    """Lunar calendar data from the calendar proxy; every field may be absent."""

    lunar: Optional[str] = None
    zodiac: Optional[str] = None
    cyclical_year: Optional[str] = None
    cyclical_month: Optional[str] = None
    cyclical_day: Optional[str] = None
    yi: Optional[str] = None
    ji: Optional[str] = None
    festivals: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: Optional[dict[str, Any]]) -> Optional[AlmanacSnapshot]:
        """Build a snapshot from the ``/api/calendar`` payload, or None if unusable."""
        if not isinstance(payload, dict) or payload.get("error"):
            return None

        def _str(container: Any, key: str) -> Optional[str]:
            if not isinstance(container, dict):
                return None
            value = container.get(key)
            return None if value is None or value == "" else str(value)

        festivals = payload.get("festivals")
        return cls(
            lunar=_str(payload, "lunar"),
            zodiac=_str(payload, "zodiac"),
            cyclical_year=_str(payload.get("cyclical"), "year"),
            cyclical_month=_str(payload.get("cyclical"), "month"),
            cyclical_day=_str(payload.get("cyclical"), "day"),
            yi=_str(payload.get("almanac"), "yi"),
            ji=_str(payload.get("almanac"), "ji"),
            festivals=tuple(str(f) for f in festivals) if isinstance(festivals, list) else (),
        )

    def lunar_line(self) -> str:
        return f"农历：{self.lunar}" if self.lunar else "农历：-"

    def cyclical_line(self) -> Optional[str]:
        if not (self.cyclical_year or self.cyclical_month or self.cyclical_day):
            return None
        return (
            f"干支：{self.cyclical_year or '-'}年 {self.cyclical_month or '-'}月 "
            f"{self.cyclical_day or '-'}日"
        )

    def almanac_line(self) -> Optional[str]:
        if not (self.yi or self.ji):
            return None
        return f"宜：{self.yi or '-'}；忌：{self.ji or '-'}"


@dataclass(frozen=True)
class Enrichment:
    """Optional context drawn on the card when present."""

    weather: Optional[WeatherSnapshot] = None
    almanac: Optional[AlmanacSnapshot] = None

    @property
    def is_empty(self) -> bool:
        return self.weather is None and self.almanac is None


@dataclass(frozen=True)
class DailySummary:
    """Render-ready record of one day.

    ``todos`` and ``notes`` are most-recent-first and may be longer than what
    the card displays; ``todo_stats`` and ``note_count`` always describe the
    full lists.
    """

    date_label: str
    todos: tuple[TodoItem, ...] = ()
    notes: tuple[NoteItem, ...] = ()
    todo_stats: TodoStats = field(default_factory=TodoStats)
    note_count: int = 0
    share_target_url: str = ""
    enrichment: Optional[Enrichment] = None

    def __post_init__(self) -> None:
        # Accept lists from callers but store tuples so the value stays immutable.
        object.__setattr__(self, "todos", tuple(self.todos))
        object.__setattr__(self, "notes", tuple(self.notes))
        if self.note_count < 0:
            raise ValueError("note_count must be non-negative")


@dataclass(frozen=True)
class TextRun:
    """One line of text placed on the card (recorded for layout inspection)."""

    role: str
    text: str
    x: int
    y: int


@dataclass(frozen=True)
class RenderedCard:
    pixel_width: int
    pixel_height: int
    image_bytes: bytes
    code_embedded: bool = True
    warnings: tuple[str, ...] = ()
    runs: tuple[TextRun, ...] = ()

    @property
    def mime_type(self) -> str:
        return "image/png"

    @property
    def data_uri(self) -> str:
        encoded = base64.b64encode(self.image_bytes).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    def runs_for(self, role: str) -> list[TextRun]:
        return [run for run in self.runs if run.role == role]

    @staticmethod
    def download_filename(day: datetime.date) -> str:
        """Date-stamped file name offered for download."""
        return f"今朝进度_{day.isoformat()}.png"
