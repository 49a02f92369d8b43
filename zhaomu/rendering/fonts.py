"""Font lookup with an LRU cache keyed by pixel size."""

from __future__ import annotations

import logging
import os
import threading
from collections import OrderedDict
from typing import Optional, Union

from PIL import ImageFont
from PIL.ImageFont import FreeTypeFont
from PIL.ImageFont import ImageFont as BuiltinFont

logger = logging.getLogger(__name__)

MAX_FONT_CACHE_SIZE = 16

# First readable path wins. CJK-capable fonts come first; DejaVu only covers
# Latin text and is kept as a last system fallback.
FONT_CANDIDATES = (
    "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/noto-cjk/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/google-noto-cjk/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/wqy/wqy-microhei.ttc",
    "/usr/share/fonts/truetype/wqy/wqy-zenhei.ttc",
    "/usr/share/fonts/truetype/droid/DroidSansFallbackFull.ttf",
    "/System/Library/Fonts/PingFang.ttc",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
)


class FontProvider:
    """Loads fonts for the card and caches them by size.

    Args:
        font_path: Preferred font file (``ZHAOMU_FONT_PATH``); tried before the
            built-in candidate list
        max_cache_size: Number of sizes kept loaded
    """

    def __init__(
        self, font_path: Optional[str] = None, max_cache_size: int = MAX_FONT_CACHE_SIZE
    ) -> None:
        self._font_path = font_path
        self._max_cache_size = max_cache_size
        self._font_cache: OrderedDict[int, Union[FreeTypeFont, BuiltinFont]] = OrderedDict()
        self._resolved_path: Optional[str] = None
        self._resolved = False
        self._lock = threading.Lock()

    @property
    def resolved_path(self) -> Optional[str]:
        """Font file in use, or None when falling back to Pillow's default font."""
        with self._lock:
            return self._resolve_path()

    def _resolve_path(self) -> Optional[str]:
        if self._resolved:
            return self._resolved_path

        candidates = [self._font_path] if self._font_path else []
        candidates.extend(FONT_CANDIDATES)
        for path in candidates:
            if not os.path.isfile(path):
                if path == self._font_path:
                    logger.warning("Configured font not found: %s", path)
                continue
            try:
                ImageFont.truetype(path, 12)
            except OSError as e:
                logger.warning("Font %s could not be loaded: %s", path, e)
                continue
            self._resolved_path = path
            break

        if self._resolved_path is None:
            logger.warning("No system font available, using Pillow's default font")
        else:
            logger.debug("Using font %s", self._resolved_path)
        self._resolved = True
        return self._resolved_path

    def get(self, size: int) -> Union[FreeTypeFont, BuiltinFont]:
        """Get the font for ``size`` pixels from cache or load it."""
        with self._lock:
            if size in self._font_cache:
                font = self._font_cache.pop(size)
                self._font_cache[size] = font
                return font

            path = self._resolve_path()
            if path is not None:
                font = ImageFont.truetype(path, size)
            else:
                font = ImageFont.load_default(size=size)

            if len(self._font_cache) >= self._max_cache_size:
                self._font_cache.popitem(last=False)
            self._font_cache[size] = font
            return font

    def clear(self) -> None:
        with self._lock:
            self._font_cache.clear()
