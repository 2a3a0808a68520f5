import io
import random

import pytest
from PIL import Image

from app.models.intake_models import CandidateFile


def _image_bytes(fmt: str, mode: str = "RGB", size: tuple[int, int] = (64, 64)) -> bytes:
    buf = io.BytesIO()
    color = (0, 128, 255, 128) if mode == "RGBA" else "blue"
    Image.new(mode, size, color=color).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def png_bytes() -> bytes:
    return _image_bytes("PNG")


@pytest.fixture
def make_image_bytes():
    return _image_bytes


# Fixture factory to create candidate files with a name, declared type and payload
@pytest.fixture
def make_candidate():
    def _make_candidate(name: str, media_type: str = "application/pdf", size: int | None = None, data: bytes | None = None):
        if data is None:
            data = b"%PDF-1.4\n" + b"0" * max(0, (size or 16) - 9)
        if size is None:
            size = len(data)
        return CandidateFile(name=name, media_type=media_type, size=size, data=data)

    return _make_candidate


@pytest.fixture
def fast_progress() -> dict:
    """Controller keyword arguments that make the progress simulation finish in milliseconds."""
    return {
        "progress_interval": 0.001,
        "progress_step_min": 5,
        "progress_step_max": 14,
        "rng": random.Random(1234),
    }
