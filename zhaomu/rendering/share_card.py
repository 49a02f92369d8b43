"""Share card renderer.

Turns a ``DailySummary`` into a 1080x1440 PNG: gradient background, rounded
border, header, optional weather/almanac block, todos and notes sections, a QR
code pointing back at the app and an attribution line.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from zhaomu.domain.models import DailySummary, Enrichment, RenderedCard
from zhaomu.rendering.fonts import FontProvider
from zhaomu.rendering.qr_code import CodeEncoder, encode_qr
from zhaomu.rendering.text_layout import CardCanvas, LayoutCursor, draw_wrapped, fit_line

logger = logging.getLogger(__name__)

GRADIENT_TOP = (0x11, 0x18, 0x27)
GRADIENT_BOTTOM = (0x1F, 0x29, 0x37)
WHITE = (255, 255, 255)
DATE_BLUE = (0x93, 0xC5, 0xFD)
DIVIDER = (0x37, 0x41, 0x51)
MUTED = (0x9C, 0xA3, 0xAF)
BORDER = (255, 255, 255, 48)
DONE_TEXT = (255, 255, 255, 140)

CODE_FAILURE_WARNING = "二维码生成失败，已省略二维码"


@dataclass(frozen=True)
class CardLayout:
    """Geometry, item caps and font sizes of the card.

    All vertical positions are text baselines.
    """

    width: int = 1080
    height: int = 1440
    margin: int = 60

    border_inset: int = 30
    border_radius: int = 32
    border_width: int = 2

    header_baseline: int = 120
    header_gap: int = 24
    divider_y: int = 152
    first_section_baseline: int = 220

    heading_advance: int = 48
    body_line_height: int = 44
    item_line_height: int = 52
    section_gap: int = 28

    max_todos: int = 4
    max_notes: int = 3
    item_max_lines: int = 1
    enrichment_max_lines: int = 1

    code_size: int = 220
    caption_gap: int = 18

    title_size: int = 64
    date_size: int = 36
    heading_size: int = 36
    body_size: int = 32
    item_size: int = 30
    caption_size: int = 26
    attribution_size: int = 28

    title_text: str = "今朝·今日进度"
    todo_heading: str = "待办"
    note_heading: str = "笔记"
    weather_heading: str = "天气"
    almanac_heading: str = "万年历"
    todo_placeholder: str = "今天还没有待办"
    note_placeholder: str = "今天还没有笔记"
    done_prefix: str = "✓ "
    pending_prefix: str = "• "
    note_prefix: str = "• "
    code_caption: str = "扫码查看"
    attribution: str = "由 朝暮记 生成"

    @property
    def content_width(self) -> int:
        return self.width - 2 * self.margin

    @property
    def code_origin(self) -> tuple[int, int]:
        return (
            self.width - self.margin - self.code_size,
            self.height - self.margin - self.code_size,
        )


class ShareCardRenderer:
    """Renders share cards.

    The renderer holds no state besides its font cache and may be shared
    between threads.

    Args:
        font_path: Preferred font file; see ``FontProvider``
        layout: Card geometry and caps
        code_encoder: Callable producing the QR tile; replaceable in tests
        fonts: Pre-built font provider (overrides ``font_path``)
    """

    def __init__(
        self,
        font_path: Optional[str] = None,
        layout: Optional[CardLayout] = None,
        code_encoder: CodeEncoder = encode_qr,
        fonts: Optional[FontProvider] = None,
    ) -> None:
        self.layout = layout or CardLayout()
        self.fonts = fonts or FontProvider(font_path)
        self._code_encoder = code_encoder

    def render(self, summary: DailySummary) -> RenderedCard:
        """Render ``summary`` to PNG.

        Only the QR code may fail; in that case the card is returned without
        it and ``code_embedded`` is False.
        """
        layout = self.layout
        image = self._background()
        canvas = CardCanvas(image)
        warnings: list[str] = []

        self._draw_border(canvas)
        cursor = self._draw_header(canvas, summary)
        if summary.enrichment is not None:
            cursor = self._draw_enrichment(canvas, summary.enrichment, cursor)
        cursor = self._draw_todos(canvas, summary, cursor)
        self._draw_notes(canvas, summary, cursor)

        code_embedded = self._draw_code(canvas, summary.share_target_url)
        if not code_embedded:
            warnings.append(CODE_FAILURE_WARNING)
        self._draw_attribution(canvas)

        buffer = io.BytesIO()
        image.save(buffer, format="PNG")

        logger.debug(
            "Rendered share card: %d todos shown of %d, %d notes shown of %d, code=%s",
            min(len(summary.todos), layout.max_todos),
            summary.todo_stats.total,
            min(len(summary.notes), layout.max_notes),
            summary.note_count,
            code_embedded,
        )
        return RenderedCard(
            pixel_width=image.width,
            pixel_height=image.height,
            image_bytes=buffer.getvalue(),
            code_embedded=code_embedded,
            warnings=tuple(warnings),
            runs=canvas.runs,
        )

    def _background(self) -> Image.Image:
        size = (self.layout.width, self.layout.height)
        mask = Image.linear_gradient("L").resize(size)
        top = Image.new("RGB", size, GRADIENT_TOP)
        bottom = Image.new("RGB", size, GRADIENT_BOTTOM)
        return Image.composite(bottom, top, mask)

    def _draw_border(self, canvas: CardCanvas) -> None:
        layout = self.layout
        inset = layout.border_inset
        canvas.rounded_outline(
            (inset, inset, layout.width - inset - 1, layout.height - inset - 1),
            radius=layout.border_radius,
            outline=BORDER,
            width=layout.border_width,
        )

    def _draw_header(self, canvas: CardCanvas, summary: DailySummary) -> LayoutCursor:
        layout = self.layout
        title_font = self.fonts.get(layout.title_size)
        date_font = self.fonts.get(layout.date_size)
        canvas.text(
            layout.margin,
            layout.header_baseline,
            layout.title_text,
            font=title_font,
            fill=WHITE,
            role="title",
        )

        # The date shares the title baseline, between the title and the right margin.
        date_room = layout.content_width - canvas.measure(layout.title_text, title_font) - layout.header_gap
        date_label = fit_line(summary.date_label, date_room, lambda s: canvas.measure(s, date_font))
        if date_label:
            canvas.text(
                layout.width - layout.margin,
                layout.header_baseline,
                date_label,
                font=date_font,
                fill=DATE_BLUE,
                role="date",
                anchor="rs",
            )
        canvas.hline(layout.margin, layout.width - layout.margin, layout.divider_y, DIVIDER)
        return LayoutCursor(layout.first_section_baseline)

    def _heading(self, canvas: CardCanvas, text: str, cursor: LayoutCursor) -> LayoutCursor:
        canvas.text(
            self.layout.margin,
            cursor.y,
            text,
            font=self.fonts.get(self.layout.heading_size),
            fill=WHITE,
            role="heading",
        )
        return cursor.advance(self.layout.heading_advance)

    def _body(
        self,
        canvas: CardCanvas,
        text: str,
        cursor: LayoutCursor,
        role: str,
        max_lines: int,
    ) -> LayoutCursor:
        layout = self.layout
        return draw_wrapped(
            canvas,
            text,
            layout.margin,
            cursor,
            max_width=layout.content_width,
            line_height=layout.body_line_height,
            max_lines=max_lines,
            font=self.fonts.get(layout.body_size),
            fill=WHITE,
            role=role,
        )

    def _draw_enrichment(
        self, canvas: CardCanvas, enrichment: Enrichment, cursor: LayoutCursor
    ) -> LayoutCursor:
        layout = self.layout
        cap = layout.enrichment_max_lines

        if enrichment.weather is not None:
            cursor = self._heading(canvas, layout.weather_heading, cursor)
            cursor = self._body(canvas, enrichment.weather.summary_line(), cursor, "weather", cap)
            cursor = cursor.advance(layout.section_gap)

        almanac = enrichment.almanac
        if almanac is not None:
            cursor = self._heading(canvas, layout.almanac_heading, cursor)
            cursor = self._body(canvas, almanac.lunar_line(), cursor, "lunar", cap)
            cyclical = almanac.cyclical_line()
            if cyclical:
                cursor = self._body(canvas, cyclical, cursor, "cyclical", cap)
            yi_ji = almanac.almanac_line()
            if yi_ji:
                cursor = self._body(canvas, yi_ji, cursor, "almanac", cap)
            cursor = cursor.advance(layout.section_gap)

        return cursor

    def _draw_items(
        self,
        canvas: CardCanvas,
        lines: list[tuple[str, tuple[int, ...]]],
        placeholder: str,
        role: str,
        cursor: LayoutCursor,
    ) -> LayoutCursor:
        layout = self.layout
        font = self.fonts.get(layout.item_size)

        if not lines:
            canvas.text(
                layout.margin, cursor.y, placeholder, font=font, fill=MUTED, role=f"{role}_placeholder"
            )
            return cursor.advance(layout.item_line_height)

        for text, fill in lines:
            cursor = draw_wrapped(
                canvas,
                text,
                layout.margin,
                cursor,
                max_width=layout.content_width,
                line_height=layout.item_line_height,
                max_lines=layout.item_max_lines,
                font=font,
                fill=fill,
                role=role,
            )
        return cursor

    def _draw_todos(
        self, canvas: CardCanvas, summary: DailySummary, cursor: LayoutCursor
    ) -> LayoutCursor:
        layout = self.layout
        stats = summary.todo_stats
        cursor = self._heading(canvas, layout.todo_heading, cursor)
        cursor = self._body(canvas, f"完成 {stats.completed}/{stats.total}", cursor, "todo_counter", 1)

        shown = summary.todos[: layout.max_todos]
        lines = [
            (layout.done_prefix + t.title, DONE_TEXT) if t.done else (layout.pending_prefix + t.title, WHITE)
            for t in shown
        ]
        cursor = self._draw_items(canvas, lines, layout.todo_placeholder, "todo", cursor)
        return cursor.advance(layout.section_gap)

    def _draw_notes(
        self, canvas: CardCanvas, summary: DailySummary, cursor: LayoutCursor
    ) -> LayoutCursor:
        layout = self.layout
        cursor = self._heading(canvas, layout.note_heading, cursor)
        cursor = self._body(canvas, f"新增 {summary.note_count} 条", cursor, "note_counter", 1)

        shown = summary.notes[: layout.max_notes]
        lines = [(layout.note_prefix + n.text, WHITE) for n in shown]
        return self._draw_items(canvas, lines, layout.note_placeholder, "note", cursor)

    def _draw_code(self, canvas: CardCanvas, target_url: str) -> bool:
        layout = self.layout
        try:
            tile = self._code_encoder(target_url, layout.code_size)
            if tile.size != (layout.code_size, layout.code_size):
                tile = tile.resize((layout.code_size, layout.code_size), Image.Resampling.NEAREST)
            tile = tile.convert("RGB")
        except Exception as e:
            logger.warning("QR code generation failed, rendering card without it: %s", e)
            return False

        x, y = layout.code_origin
        canvas.paste(tile, x, y)
        canvas.text(
            x + layout.code_size // 2,
            y - layout.caption_gap,
            layout.code_caption,
            font=self.fonts.get(layout.caption_size),
            fill=MUTED,
            role="code_caption",
            anchor="ms",
        )
        return True

    def _draw_attribution(self, canvas: CardCanvas) -> None:
        layout = self.layout
        canvas.text(
            layout.margin,
            layout.height - layout.margin,
            layout.attribution,
            font=self.fonts.get(layout.attribution_size),
            fill=MUTED,
            role="attribution",
        )
