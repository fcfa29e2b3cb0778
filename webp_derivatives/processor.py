"""
Image transcoder — decode, validate, resize and encode to WebP.

Uses Pillow for image manipulation.  A decoded image is shared read-only
between concurrent sized-derivative tasks; every resize works on a copy.

Resize policy:
  new_height = int(height * target_width / width)   (truncated, min 1)
  filter:      Lanczos
"""
from __future__ import annotations

import io
import logging

from PIL import Image, ImageOps

from webp_derivatives.constants import WEBP_METHOD, WEBP_QUALITY
from webp_derivatives.exceptions import ImageEncodeError, UnsupportedImageFormat

logger = logging.getLogger(__name__)

_ALPHA_MODES = ("RGBA", "LA", "PA")


def scaled_height(width: int, height: int, target_width: int) -> int:
    """Height that keeps the aspect ratio at ``target_width`` (truncating)."""
    return max(1, int(height * target_width / width))


class ImageTranscoder:
    """Turn raw object bytes into WebP derivatives."""

    def __init__(self, quality: int = WEBP_QUALITY, method: int = WEBP_METHOD) -> None:
        self.quality = quality
        self.method = method

    def decode(self, data: bytes) -> Image.Image:
        """Decode ``data`` into a fully loaded RGB/RGBA image.

        Only the first frame of multi-frame formats is used.  Anything Pillow
        cannot decode, including decompression-bomb rejections, raises
        UnsupportedImageFormat.
        """
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
            image = ImageOps.exif_transpose(image)
            if image.width <= 0 or image.height <= 0:
                raise ValueError("image has no pixels")
            return self._normalize_mode(image)
        except Exception as exc:
            # UnidentifiedImageError, truncated data, DecompressionBombError and
            # plugin parse errors all mean the same thing here
            raise UnsupportedImageFormat(str(exc)) from exc

    @staticmethod
    def _normalize_mode(image: Image.Image) -> Image.Image:
        # WebP stores RGB or RGBA only
        if image.mode in _ALPHA_MODES or (
            image.mode == "P" and "transparency" in image.info
        ):
            return image if image.mode == "RGBA" else image.convert("RGBA")
        if image.mode != "RGB":
            return image.convert("RGB")
        return image

    def resize(self, image: Image.Image, target_width: int | None) -> Image.Image:
        """Scale to ``target_width`` keeping aspect ratio; None returns a copy."""
        if target_width is None:
            return image.copy()
        height = scaled_height(image.width, image.height, target_width)
        return image.copy().resize((target_width, height), Image.LANCZOS)

    def encode(self, image: Image.Image) -> bytes:
        """Serialize as lossy WebP."""
        buf = io.BytesIO()
        try:
            image.save(buf, format="WEBP", quality=self.quality, method=self.method)
        except Exception as exc:
            # libwebp reports limits (e.g. >16383px) as ValueError or RuntimeError
            raise ImageEncodeError(str(exc)) from exc
        return buf.getvalue()

    def convert_to_webp(self, image: Image.Image, target_width: int | None = None) -> bytes:
        """Resize (optionally) and encode in one step. CPU-bound."""
        return self.encode(self.resize(image, target_width))
