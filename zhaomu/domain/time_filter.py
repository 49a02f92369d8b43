"""Time range presets for listing todos and notes.

Presets mirror the list pages: everything, today, the last 7 or 30 days, or a
custom inclusive ``start``/``end`` date range. Ranges are resolved in the
configured local timezone and returned as UTC ISO strings for ``created_at``
filters.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Literal, Optional

from zhaomu.core.exceptions import RequestValidationError
from zhaomu.core.timezone_utils import day_bounds_utc, local_now, to_iso_utc

FilterType = Literal["all", "today", "last7", "last30", "custom"]
_FILTER_TYPES = ("all", "today", "last7", "last30", "custom")


@dataclass(frozen=True)
class TimeFilter:
    type: FilterType = "all"
    start: Optional[datetime.date] = None
    end: Optional[datetime.date] = None

    @classmethod
    def from_query(
        cls, range_type: Optional[str], start: Optional[str] = None, end: Optional[str] = None
    ) -> TimeFilter:
        """Parse ``?range=&start=&end=`` query values.

        Raises:
            RequestValidationError: unknown preset, malformed date, or start after end
        """
        kind = (range_type or "all").strip().lower()
        if kind not in _FILTER_TYPES:
            raise RequestValidationError(
                f"invalid range {range_type!r}; expected one of {', '.join(_FILTER_TYPES)}"
            )

        start_date = _parse_date(start, "start")
        end_date = _parse_date(end, "end")
        if start_date and end_date and start_date > end_date:
            raise RequestValidationError("start must not be after end")
        return cls(type=kind, start=start_date, end=end_date)  # type: ignore[arg-type]

    def resolve(
        self, tz_name: Optional[str], now: Optional[datetime.datetime] = None
    ) -> tuple[Optional[str], Optional[str]]:
        """Return ``(gte, lte)`` UTC ISO bounds; either side may be None (unbounded)."""
        today = local_now(tz_name, now).date()

        if self.type == "all":
            return None, None
        if self.type == "today":
            first, last = today, today
        elif self.type == "last7":
            first, last = today - datetime.timedelta(days=7), today
        elif self.type == "last30":
            first, last = today - datetime.timedelta(days=30), today
        else:
            first, last = self.start, self.end

        gte = to_iso_utc(day_bounds_utc(first, tz_name)[0]) if first else None
        lte = to_iso_utc(day_bounds_utc(last, tz_name)[1]) if last else None
        return gte, lte


def _parse_date(value: Optional[str], name: str) -> Optional[datetime.date]:
    if not value:
        return None
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise RequestValidationError(f"{name} must be a YYYY-MM-DD date") from None
