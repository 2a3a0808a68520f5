import base64
import io

import pytest
from PIL import Image

from app.intake.preview import generate_preview
from app.intake.preview import to_data_uri
from app.models.intake_models import CandidateFile


def _decode(data_uri: str) -> tuple[str, bytes]:
    header, payload = data_uri.split(",", 1)
    return header, base64.b64decode(payload)


def test_to_data_uri():
    assert to_data_uri(b"abc", "image/png") == "data:image/png;base64,YWJj"


@pytest.mark.asyncio
async def test_opaque_image_becomes_bounded_jpeg(make_image_bytes):
    data = make_image_bytes("PNG", "RGB", (1200, 600))
    candidate = CandidateFile.from_bytes("wide.png", data, "image/png")

    preview = await generate_preview(candidate, thumbnail_size=(100, 100), jpeg_quality=60)

    header, payload = _decode(preview)
    assert header == "data:image/jpeg;base64"
    with Image.open(io.BytesIO(payload)) as thumb:
        assert thumb.size == (100, 50)


@pytest.mark.asyncio
async def test_transparent_image_stays_png(make_image_bytes):
    data = make_image_bytes("PNG", "RGBA", (40, 40))
    candidate = CandidateFile.from_bytes("icon.png", data, "image/png")

    preview = await generate_preview(candidate)

    assert preview.startswith("data:image/png;base64,")


@pytest.mark.asyncio
async def test_svg_falls_back_to_raw_bytes():
    svg = b'<svg xmlns="http://www.w3.org/2000/svg" width="1" height="1"/>'
    candidate = CandidateFile.from_bytes("logo.svg", svg, "image/svg+xml")

    preview = await generate_preview(candidate)

    assert preview == to_data_uri(svg, "image/svg+xml")


@pytest.mark.asyncio
async def test_corrupt_image_still_gets_a_preview():
    candidate = CandidateFile.from_bytes("broken.jpg", b"\xff\xd8not really a jpeg", "image/jpeg")

    preview = await generate_preview(candidate)

    assert preview.startswith("data:image/jpeg;base64,")
    assert _decode(preview)[1] == b"\xff\xd8not really a jpeg"


@pytest.mark.asyncio
async def test_oversized_pixel_count_falls_back_to_raw_bytes(monkeypatch, make_image_bytes):
    # Pillow refuses images above twice this pixel count with DecompressionBombError
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)
    data = make_image_bytes("PNG", "L", (64, 64))
    candidate = CandidateFile.from_bytes("huge.png", data, "image/png")

    preview = await generate_preview(candidate)

    assert preview == to_data_uri(data, "image/png")
