"""Share card rendering: text layout, fonts, QR code and the card itself."""

from .share_card import CardLayout, ShareCardRenderer
from .text_layout import CardCanvas, LayoutCursor, draw_wrapped, wrap_lines

__all__ = [
    "CardCanvas",
    "CardLayout",
    "LayoutCursor",
    "ShareCardRenderer",
    "draw_wrapped",
    "wrap_lines",
]
