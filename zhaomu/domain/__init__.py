"""Domain types and pure helpers: daily summary, time filters, request models."""

from .models import (
    AlmanacSnapshot,
    DailySummary,
    Enrichment,
    NoteItem,
    RenderedCard,
    TextRun,
    TodoItem,
    TodoStats,
    WeatherSnapshot,
)

__all__ = [
    "AlmanacSnapshot",
    "DailySummary",
    "Enrichment",
    "NoteItem",
    "RenderedCard",
    "TextRun",
    "TodoItem",
    "TodoStats",
    "WeatherSnapshot",
]
