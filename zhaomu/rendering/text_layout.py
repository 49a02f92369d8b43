"""Text layout primitives for the share card.

Drawing goes through ``CardCanvas`` and the vertical position is an explicit
``LayoutCursor`` value handed from one drawing step to the next, so layout
math can be tested with a fake measure function and no pixels.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

from PIL import Image, ImageDraw
from PIL.ImageFont import FreeTypeFont, ImageFont

from zhaomu.domain.models import TextRun

logger = logging.getLogger(__name__)

Font = Union[FreeTypeFont, ImageFont]
Color = Union[tuple[int, int, int], tuple[int, int, int, int]]
Measure = Callable[[str], float]


@dataclass(frozen=True)
class LayoutCursor:
    """Baseline of the next line to draw, in pixels from the top edge."""

    y: int

    def advance(self, dy: int) -> LayoutCursor:
        return LayoutCursor(self.y + dy)


def flatten_text(text: str) -> str:
    """Join the lines of ``text`` with single spaces.

    ``ImageDraw.textlength`` refuses strings containing line breaks.
    """
    return " ".join(text.splitlines())


def fit_line(text: str, max_width: float, measure: Measure, ellipsis: str = "…") -> str:
    """Shorten ``text`` to one line no wider than ``max_width``.

    Text that fits is returned flattened but otherwise unchanged; longer text
    loses trailing characters and gains ``ellipsis``. Returns an empty string
    when not even the ellipsis fits.
    """
    text = flatten_text(text)
    if measure(text) <= max_width:
        return text
    while text and measure(text + ellipsis) > max_width:
        text = text[:-1]
    return text + ellipsis if text else ""


def wrap_lines(text: str, max_width: float, measure: Measure, max_lines: int) -> list[str]:
    """Greedy per-character wrap.

    Line breaks in ``text`` are flattened to spaces first. A character that
    would push a non-empty line past ``max_width`` starts a new line. At most
    ``max_lines`` lines are returned; the rest of the text is dropped. A
    single character wider than ``max_width`` still gets its own line.

    Args:
        text: Text to wrap (CJK-dense, so no word boundaries are used)
        max_width: Maximum rendered width of a line
        measure: Returns the rendered width of a string
        max_lines: Line cap

    Returns:
        Wrapped lines, empty for empty text or a non-positive cap
    """
    text = flatten_text(text)
    if max_lines <= 0 or not text:
        return []

    lines: list[str] = []
    line = ""
    for char in text:
        candidate = line + char
        if line and measure(candidate) > max_width:
            lines.append(line)
            if len(lines) >= max_lines:
                return lines
            line = char
        else:
            line = candidate

    if line:
        lines.append(line)
    return lines


class CardCanvas:
    """Thin wrapper over ``ImageDraw`` that records every text run drawn."""

    def __init__(self, image: Image.Image) -> None:
        self.image = image
        # RGBA drawing mode blends translucent fills onto the RGB card.
        self._draw = ImageDraw.Draw(image, "RGBA")
        self._runs: list[TextRun] = []

    @property
    def runs(self) -> tuple[TextRun, ...]:
        return tuple(self._runs)

    def measure(self, text: str, font: Font) -> float:
        return self._draw.textlength(text, font=font)

    def text(
        self,
        x: int,
        y: int,
        text: str,
        *,
        font: Font,
        fill: Color,
        role: str,
        anchor: str = "ls",
    ) -> None:
        """Draw ``text`` anchored at ``(x, y)``; the default anchor is left-baseline."""
        self._draw.text((x, y), text, font=font, fill=fill, anchor=anchor)
        self._runs.append(TextRun(role=role, text=text, x=x, y=y))

    def hline(self, x0: int, x1: int, y: int, fill: Color, width: int = 2) -> None:
        self._draw.line([(x0, y), (x1, y)], fill=fill, width=width)

    def rounded_outline(
        self,
        box: tuple[int, int, int, int],
        radius: int,
        outline: Color,
        width: int,
    ) -> None:
        self._draw.rounded_rectangle(box, radius=radius, outline=outline, width=width)

    def paste(self, tile: Image.Image, x: int, y: int) -> None:
        self.image.paste(tile, (x, y))


def draw_wrapped(
    canvas: CardCanvas,
    text: str,
    x: int,
    cursor: LayoutCursor,
    *,
    max_width: int,
    line_height: int,
    max_lines: int,
    font: Font,
    fill: Color,
    role: str,
) -> LayoutCursor:
    """Wrap ``text`` and draw each line at the cursor.

    Every drawn line advances the cursor by ``line_height``; text that
    produces no lines leaves the cursor where it was.

    Returns:
        Cursor positioned below the last drawn line
    """
    lines = wrap_lines(text, max_width, lambda s: canvas.measure(s, font), max_lines)
    for line in lines:
        canvas.text(x, cursor.y, line, font=font, fill=fill, role=role)
        cursor = cursor.advance(line_height)
    return cursor
