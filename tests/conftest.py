# tests/conftest.py
from __future__ import annotations

import io
import os
import random

import pytest
from PIL import Image

os.environ.setdefault("IMAGE_INTAKE_RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("IMAGE_INTAKE_LOG_JSON", "false")
os.environ.pop("IMAGE_INTAKE_API_KEY", None)
os.environ.pop("IMAGE_INTAKE_API_KEYS", None)

from image_intake.codec import DecodedImage, ImageCodec  # noqa: E402
from image_intake.config import reset_settings  # noqa: E402
from image_intake.transforms import ORIENTATION_TAG, GeometricTransform  # noqa: E402
from image_intake.validation.sniffing import find_suspicious_marker  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


def noise_image(size: tuple[int, int], mode: str = "RGB", seed: int = 0) -> Image.Image:
    """Deterministic noise; compresses badly so files stay well above 512 bytes."""
    channels = len(mode)
    rng = random.Random(seed)
    raw = bytes(rng.getrandbits(8) for _ in range(size[0] * size[1] * channels))
    return Image.frombytes(mode, size, raw)


def encode_image(
    fmt: str = "JPEG",
    size: tuple[int, int] = (48, 32),
    mode: str = "RGB",
    orientation: int | None = None,
) -> bytes:
    """Encode a noise image, picking a seed whose bytes hold no markup marker."""
    for seed in range(50):
        image = noise_image(size, mode, seed)
        params = {}
        if orientation is not None:
            exif = Image.Exif()
            exif[ORIENTATION_TAG] = orientation
            params["exif"] = exif.tobytes()
        buf = io.BytesIO()
        image.save(buf, format=fmt, **params)
        data = buf.getvalue()
        if len(data) >= 512 and find_suspicious_marker(data) is None:
            return data
    raise AssertionError("could not build a marker-free test image")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return encode_image("JPEG")


@pytest.fixture
def rotated_jpeg_bytes() -> bytes:
    return encode_image("JPEG", orientation=6)


@pytest.fixture
def png_bytes() -> bytes:
    return encode_image("PNG")


class FakeHandle:
    """Stand-in for DecodedImage used with FakeCodec."""

    def __init__(self, tags: dict | None = None, size=(4, 2)):
        self.tags = dict(tags or {})
        self.applied: list[GeometricTransform] = []
        self.size = size
        self.source_format = "FAKE"
        self.closed = False

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class FakeCodec(ImageCodec):
    """In-memory codec recording every call."""

    def __init__(
        self,
        tags: dict | None = None,
        decode_error: Exception | None = None,
        decode_returns_none: bool = False,
        encode_error: Exception | None = None,
        transform_error: Exception | None = None,
    ):
        self.tags = tags or {}
        self.decode_error = decode_error
        self.decode_returns_none = decode_returns_none
        self.encode_error = encode_error
        self.transform_error = transform_error
        self.handles: list[FakeHandle] = []
        self.encoded: list[str] = []

    def decode(self, data: bytes) -> DecodedImage:
        if self.decode_error is not None:
            raise self.decode_error
        if self.decode_returns_none:
            return None
        handle = FakeHandle(self.tags)
        self.handles.append(handle)
        return handle

    def encode(self, image, fmt: str) -> bytes:
        if self.encode_error is not None:
            raise self.encode_error
        self.encoded.append(fmt)
        return b"encoded:" + ",".join(t.value for t in image.applied).encode()

    def get_tag(self, image, key: int):
        return image.tags.get(key)

    def remove_tag(self, image, key: int) -> None:
        image.tags.pop(key, None)

    def apply_transform(self, image, transform: GeometricTransform) -> None:
        if self.transform_error is not None:
            raise self.transform_error
        image.applied.append(transform)
