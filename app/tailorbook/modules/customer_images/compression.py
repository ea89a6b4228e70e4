from __future__ import annotations

import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

MAX_BYTES = 150 * 1024
MAX_DIMENSION = 1200
JPEG_CONTENT_TYPE = "image/jpeg"

_QUALITY_STEPS = (85, 75, 65, 55, 45, 35)
_MIN_DIMENSION = 200
_SHRINK_FACTOR = 0.8


class ImageCompressionError(RuntimeError):
    pass


def _to_rgb(img: Image.Image) -> Image.Image:
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        # JPEG has no alpha: flatten onto white.
        rgba = img.convert("RGBA")
        bg = Image.new("RGB", rgba.size, (255, 255, 255))
        bg.paste(rgba, mask=rgba.getchannel("A"))
        return bg
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def _encode(img: Image.Image, quality: int) -> bytes:
    out = io.BytesIO()
    img.save(out, format="JPEG", quality=quality, optimize=True)
    return out.getvalue()


def compress_image(data: bytes, *, max_bytes: int = MAX_BYTES, max_dimension: int = MAX_DIMENSION) -> bytes:
    """
    Re-encode any Pillow-readable image as a JPEG no larger than `max_bytes`
    whose longest side is at most `max_dimension` pixels.

    Quality is stepped down first; if the lowest quality is still too big the
    image is shrunk by 20% and the quality ladder starts again. The smallest
    encoding reached is returned even when it stays above `max_bytes`
    (tiny dimensions are not worth the loss).

    Raises ImageCompressionError when the input cannot be decoded.
    """
    try:
        with Image.open(io.BytesIO(data)) as src:
            src.load()
            img = ImageOps.exif_transpose(src)
            img = _to_rgb(img)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ImageCompressionError(f"Cannot decode image: {e}") from e

    img.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)

    best: bytes | None = None
    while True:
        for quality in _QUALITY_STEPS:
            encoded = _encode(img, quality)
            if best is None or len(encoded) < len(best):
                best = encoded
            if len(encoded) <= max_bytes:
                return encoded
        w, h = img.size
        nw, nh = int(w * _SHRINK_FACTOR), int(h * _SHRINK_FACTOR)
        if max(nw, nh) < _MIN_DIMENSION:
            logger.warning("Image still %d bytes at %dx%d; keeping smallest encoding", len(best), w, h)
            return best
        img = img.resize((nw, nh), Image.Resampling.LANCZOS)
