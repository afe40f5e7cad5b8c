"""
Image codec capability used by the normalizer and the upload validator.

The core only needs five operations from an image library; ``ImageCodec``
names them and ``PillowCodec`` implements them on top of Pillow.
"""

import io
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from PIL import Image

from .transforms import GeometricTransform

_PIL_TRANSPOSE: dict[GeometricTransform, Image.Transpose] = {
    GeometricTransform.FLIP_HORIZONTAL: Image.Transpose.FLIP_LEFT_RIGHT,
    GeometricTransform.ROTATE_180: Image.Transpose.ROTATE_180,
    GeometricTransform.ROTATE_180_FLIP_HORIZONTAL: Image.Transpose.FLIP_TOP_BOTTOM,
    GeometricTransform.ROTATE_90_FLIP_HORIZONTAL: Image.Transpose.TRANSPOSE,
    # Pillow rotates counter-clockwise
    GeometricTransform.ROTATE_90: Image.Transpose.ROTATE_270,
    GeometricTransform.ROTATE_270_FLIP_HORIZONTAL: Image.Transpose.TRANSVERSE,
    GeometricTransform.ROTATE_270: Image.Transpose.ROTATE_90,
}

# Modes JPEG can store directly
_JPEG_MODES = {"RGB", "L", "CMYK"}

# Pillow plugins allowed to parse each declared type; MPO is how Pillow
# opens multi-frame phone JPEGs
_FORMATS_BY_TYPE: dict[str, tuple[str, ...]] = {
    "image/jpeg": ("JPEG", "MPO"),
    "image/jpg": ("JPEG", "MPO"),
    "image/png": ("PNG",),
}

DEFAULT_FORMATS = ("JPEG", "MPO", "PNG")


def formats_for_types(content_types) -> tuple[str, ...]:
    """Pillow format names that may decode uploads declared as ``content_types``."""
    mime_formats = {mime: fmt for fmt, mime in Image.MIME.items()}
    formats: list[str] = []
    for content_type in sorted(content_types):
        for fmt in _FORMATS_BY_TYPE.get(content_type, (mime_formats.get(content_type),)):
            if fmt and fmt not in formats:
                formats.append(fmt)
    return tuple(formats)


class CodecError(Exception):
    """Raised when the codec cannot decode, encode or transform an image."""


class DecodeError(CodecError):
    """Payload is not an image the codec can parse."""


class EncodeError(CodecError):
    """Image could not be written in the requested format."""


@dataclass
class DecodedImage:
    """Handle to a decoded image and the metadata read with it."""

    image: Image.Image
    exif: Image.Exif = field(default_factory=Image.Exif)
    source_format: str | None = None

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def close(self) -> None:
        self.image.close()

    def __enter__(self) -> "DecodedImage":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class ImageCodec(ABC):
    """Operations the core needs from an image library."""

    @abstractmethod
    def decode(self, data: bytes) -> DecodedImage:
        """
        Decode raw bytes into a pixel image.

        Raises:
            DecodeError: If the payload is not a decodable image.
        """

    @abstractmethod
    def encode(self, image: DecodedImage, fmt: str) -> bytes:
        """
        Encode the image (pixels and remaining metadata) into ``fmt``.

        Raises:
            EncodeError: If the image cannot be written.
        """

    @abstractmethod
    def get_tag(self, image: DecodedImage, key: int):
        """Return the raw value of metadata tag ``key``, or None if absent."""

    @abstractmethod
    def remove_tag(self, image: DecodedImage, key: int) -> None:
        """Remove metadata tag ``key``; no-op if absent."""

    @abstractmethod
    def apply_transform(self, image: DecodedImage, transform: GeometricTransform) -> None:
        """Apply ``transform`` to the pixel buffer in place."""


class PillowCodec(ImageCodec):
    """Pillow-backed codec.

    Only the plugins named in ``formats`` get to parse input; anything else
    fails to decode even if Pillow could read it.
    """

    def __init__(self, jpeg_quality: int = 95, formats: tuple[str, ...] = DEFAULT_FORMATS):
        self.jpeg_quality = jpeg_quality
        self.formats = tuple(f.upper() for f in formats)

    def decode(self, data: bytes) -> DecodedImage:
        try:
            image = Image.open(io.BytesIO(data), formats=self.formats)
        except Exception as e:
            raise DecodeError(f"Cannot identify image: {e}") from e

        # Pillow only warns between 1x and 2x MAX_IMAGE_PIXELS
        max_pixels = Image.MAX_IMAGE_PIXELS
        pixels = image.width * image.height
        if max_pixels and pixels > max_pixels:
            image.close()
            raise DecodeError(f"Image has {pixels} pixels, limit is {max_pixels}")

        try:
            # Image.open is lazy; force the pixel data so truncated files fail here
            image.load()
            exif = image.getexif()
        except Exception as e:
            image.close()
            raise DecodeError(f"Cannot decode image: {e}") from e

        return DecodedImage(image=image, exif=exif, source_format=image.format)

    def encode(self, image: DecodedImage, fmt: str) -> bytes:
        fmt = fmt.upper()
        pixels = image.image
        converted = None
        if fmt == "JPEG" and pixels.mode not in _JPEG_MODES:
            converted = pixels = pixels.convert("RGB")

        params = {}
        if fmt == "JPEG":
            params["quality"] = self.jpeg_quality

        buf = io.BytesIO()
        try:
            if len(image.exif):
                params["exif"] = image.exif.tobytes()
            pixels.save(buf, format=fmt, **params)
        except Exception as e:
            raise EncodeError(f"Cannot encode image as {fmt}: {e}") from e
        finally:
            if converted is not None:
                converted.close()

        return buf.getvalue()

    def get_tag(self, image: DecodedImage, key: int):
        return image.exif.get(key)

    def remove_tag(self, image: DecodedImage, key: int) -> None:
        image.exif.pop(key, None)

    def apply_transform(self, image: DecodedImage, transform: GeometricTransform) -> None:
        if transform == GeometricTransform.IDENTITY:
            return

        try:
            transposed = image.image.transpose(_PIL_TRANSPOSE[transform])
        except Exception as e:
            raise CodecError(f"Cannot apply {transform.value}: {e}") from e

        previous, image.image = image.image, transposed
        previous.close()
