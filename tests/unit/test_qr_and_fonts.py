"""Tests for QR encoding and font lookup."""

from unittest.mock import patch

import pytest
from PIL import ImageChops

from zhaomu.core.exceptions import CodeGenerationError
from zhaomu.rendering.fonts import FontProvider
from zhaomu.rendering.qr_code import encode_qr

pytestmark = pytest.mark.unit


class TestEncodeQr:
    """Tests for encode_qr()."""

    def test_encode_qr_when_url_then_square_rgb_of_requested_size(self) -> None:
        image = encode_qr("https://example.app/share/abc", 220)

        assert image.size == (220, 220)
        assert image.mode == "RGB"

    def test_encode_qr_when_same_input_then_identical_pixels(self) -> None:
        first = encode_qr("https://example.app/share/abc", 220)
        second = encode_qr("https://example.app/share/abc", 220)

        assert ImageChops.difference(first, second).getbbox() is None

    def test_encode_qr_when_quiet_zone_then_corner_white(self) -> None:
        image = encode_qr("https://example.app", 220)

        assert image.getpixel((0, 0)) == (255, 255, 255)

    def test_encode_qr_when_empty_then_raises(self) -> None:
        with pytest.raises(CodeGenerationError):
            encode_qr("", 220)

    def test_encode_qr_when_too_long_then_raises(self) -> None:
        with pytest.raises(CodeGenerationError):
            encode_qr("https://example.app/" + "x" * 5000, 220)


class TestFontProvider:
    """Tests for FontProvider."""

    def test_get_when_no_font_available_then_default_font(self) -> None:
        with patch("zhaomu.rendering.fonts.os.path.isfile", return_value=False):
            provider = FontProvider(font_path="/missing/font.ttf")

            font = provider.get(30)

            assert provider.resolved_path is None
            assert font is not None

    def test_get_when_same_size_twice_then_cached(self) -> None:
        provider = FontProvider()

        assert provider.get(32) is provider.get(32)

    def test_get_when_cache_full_then_oldest_evicted(self) -> None:
        provider = FontProvider(max_cache_size=2)
        first = provider.get(10)
        provider.get(11)
        provider.get(12)

        assert provider.get(10) is not first

    def test_clear_when_called_then_fonts_reloaded(self) -> None:
        provider = FontProvider()
        first = provider.get(20)

        provider.clear()

        assert provider.get(20) is not first
