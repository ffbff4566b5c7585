"""Image decoding and JPEG re-encoding for vision API payloads."""

from __future__ import annotations

import base64
import io
import logging

from PIL import Image, UnidentifiedImageError

from ..errors import ImageDownloadError

logger = logging.getLogger(__name__)


def transcode_to_jpeg(data: bytes, *, max_dimension: int = 1024, quality: int = 85) -> bytes:
    """
    Re-encode image bytes as a progressive JPEG that fits inside a
    ``max_dimension`` square. Aspect ratio is preserved and small images are
    never enlarged.
    """
    try:
        with Image.open(io.BytesIO(data)) as raw_image:
            raw_image.load()
            image = raw_image.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise ImageDownloadError(f"Unsupported or corrupt image data: {exc}") from exc

    original_size = image.size
    # thumbnail() only ever shrinks.
    image.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)

    out = io.BytesIO()
    image.save(out, format="JPEG", quality=quality, progressive=True, optimize=True)
    logger.debug("Transcoded image %sx%s -> %sx%s (%s bytes)",
                 original_size[0], original_size[1], image.width, image.height, out.tell())
    return out.getvalue()


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")
