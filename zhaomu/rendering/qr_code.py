"""QR code generation for the share card."""

from __future__ import annotations

import logging
from collections.abc import Callable

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_M
from qrcode.exceptions import DataOverflowError

from zhaomu.core.exceptions import CodeGenerationError

logger = logging.getLogger(__name__)

# Fixed encoder parameters keep the generated image identical for identical input.
QR_BOX_SIZE = 10
QR_BORDER = 2
QR_MASK_PATTERN = 0

CodeEncoder = Callable[[str, int], Image.Image]


def encode_qr(data: str, size: int) -> Image.Image:
    """Encode ``data`` as a ``size`` x ``size`` RGB QR image.

    Raises:
        CodeGenerationError: empty data or the encoder rejected the input
    """
    if not data:
        raise CodeGenerationError("nothing to encode")

    try:
        qr = qrcode.QRCode(
            version=None,
            error_correction=ERROR_CORRECT_M,
            box_size=QR_BOX_SIZE,
            border=QR_BORDER,
            mask_pattern=QR_MASK_PATTERN,
        )
        qr.add_data(data)
        qr.make(fit=True)
        image = qr.make_image(fill_color="black", back_color="white").get_image()
    except (ValueError, TypeError, DataOverflowError) as e:
        raise CodeGenerationError(f"QR encoding failed: {e}") from e

    logger.debug("Encoded QR version %s for %d chars", qr.version, len(data))
    # Nearest-neighbour keeps module edges sharp when scaling to the slot size.
    return image.convert("RGB").resize((size, size), Image.Resampling.NEAREST)
