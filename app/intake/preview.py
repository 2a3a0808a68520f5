"""Builds self-contained image previews (data URIs) for staged image files.

Raster images are down-scaled with Pillow to the configured thumbnail box so a
preview stays small regardless of the upload size. Anything Pillow cannot
decode (SVG, truncated payloads) falls back to a data URI of the original
bytes, so every admitted image ends up with a displayable preview.
"""

import asyncio
import base64
import io
import logging

from PIL import Image
from PIL import UnidentifiedImageError

from app.core.exceptions import PreviewError
from app.models.intake_models import CandidateFile

logger = logging.getLogger(__name__)

# Formats kept lossless because JPEG would drop their transparency
_ALPHA_MODES = {"RGBA", "LA", "PA"}


def to_data_uri(data: bytes, media_type: str) -> str:
    base64_data = base64.b64encode(data).decode("ascii")
    return f"data:{media_type};base64,{base64_data}"


def _render_thumbnail(data: bytes, size: tuple[int, int], jpeg_quality: int) -> str:
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            if image.mode == "P" and "transparency" in image.info:
                image = image.convert("RGBA")
            image.thumbnail(size)
            out = io.BytesIO()
            if image.mode in _ALPHA_MODES:
                image.save(out, format="PNG", optimize=True)
                media_type = "image/png"
            else:
                image.convert("RGB").save(out, format="JPEG", quality=jpeg_quality)
                media_type = "image/jpeg"
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise PreviewError(f"Cannot decode image payload: {e}") from e
    return to_data_uri(out.getvalue(), media_type)


async def generate_preview(
    candidate: CandidateFile,
    thumbnail_size: tuple[int, int] = (512, 512),
    jpeg_quality: int = 70,
) -> str:
    """Encodes an image candidate as a data URI without blocking the event loop."""

    def _sync_build_preview() -> str:
        try:
            return _render_thumbnail(candidate.data, thumbnail_size, jpeg_quality)
        except PreviewError as e:
            logger.debug("PREVIEW: Falling back to raw data URI for %s: %s", candidate.name, e)
            return to_data_uri(candidate.data, candidate.media_type or "application/octet-stream")

    preview = await asyncio.to_thread(_sync_build_preview)
    logger.debug("PREVIEW: Built preview for %s (%d chars)", candidate.name, len(preview))
    return preview
