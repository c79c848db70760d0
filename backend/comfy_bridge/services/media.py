"""Media post-processing for downloaded ComfyUI outputs.

Videos are passed through untouched; everything else is decoded with Pillow
and re-encoded as JPEG (``.jpeg`` suffix) or PNG.
"""

from __future__ import annotations

import asyncio
import base64
import io
import logging
from dataclasses import dataclass

from PIL import Image

from comfy_bridge.config import get_settings
from comfy_bridge.schemas.history import FileCategory

logger = logging.getLogger(__name__)
settings = get_settings()

# Failures Pillow raises for unreadable or hostile image data
DECODE_ERRORS = (OSError, ValueError, Image.DecompressionBombError)


@dataclass(frozen=True)
class EncodedMedia:
    """Transcoded bytes ready for transport."""

    data: bytes
    category: FileCategory
    extension: str
    mime_type: str

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def file_size(self) -> str:
        return format_file_size(len(self.data))


def format_file_size(num_bytes: int) -> str:
    """Kilobytes rounded half-up to one decimal, e.g. ``"12.3 kB"``."""
    tenths = int(num_bytes / 1024 * 10 + 0.5)
    value = f"{tenths / 10:.1f}".rstrip("0").rstrip(".")
    return f"{value} kB"


def encode_video(filename: str, data: bytes) -> EncodedMedia:
    ext = "webm" if filename.endswith(".webm") else "mp4"
    return EncodedMedia(
        data=bytes(data),
        category=FileCategory.VIDEO,
        extension=ext,
        mime_type=f"video/{ext}",
    )


def transcode_image(filename: str, data: bytes, *, jpeg_quality: int | None = None) -> EncodedMedia:
    """Decode ``data`` and re-encode it based on the filename suffix.

    Raises:
        OSError: If Pillow cannot identify or decode the image.
    """
    quality = jpeg_quality if jpeg_quality is not None else settings.COMFY_JPEG_QUALITY
    buf = io.BytesIO()

    with Image.open(io.BytesIO(data)) as img:
        if filename.endswith(".jpeg"):
            # JPEG has no alpha channel
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            img.save(buf, format="JPEG", quality=quality)
            ext, mime = "jpeg", "image/jpeg"
        else:
            img.save(buf, format="PNG")
            ext, mime = "png", "image/png"

    logger.debug("Transcoded %s → %s (%d → %d bytes)", filename, ext, len(data), buf.tell())
    return EncodedMedia(
        data=buf.getvalue(),
        category=FileCategory.IMAGE,
        extension=ext,
        mime_type=mime,
    )


async def encode_media(filename: str, data: bytes, category: FileCategory) -> EncodedMedia:
    """Encode one downloaded file; image work runs off the event loop."""
    if category is FileCategory.VIDEO:
        return encode_video(filename, data)
    return await asyncio.to_thread(transcode_image, filename, data)
