"""
EXIF orientation tag values and the rotate/flip transforms that undo them.
"""

from enum import Enum

# EXIF "Orientation" (CIPA DC-008)
ORIENTATION_TAG = 0x0112


class GeometricTransform(str, Enum):
    """Canonical transform that brings pixel data upright.

    Rotations are clockwise and applied before the horizontal flip.
    """

    IDENTITY = "identity"
    FLIP_HORIZONTAL = "flip_horizontal"
    ROTATE_180 = "rotate_180"
    ROTATE_180_FLIP_HORIZONTAL = "rotate_180_flip_horizontal"
    ROTATE_90_FLIP_HORIZONTAL = "rotate_90_flip_horizontal"
    ROTATE_90 = "rotate_90"
    ROTATE_270_FLIP_HORIZONTAL = "rotate_270_flip_horizontal"
    ROTATE_270 = "rotate_270"

    @property
    def rotation_degrees(self) -> int:
        """Clockwise rotation component (0, 90, 180, 270)."""
        for degrees in (90, 180, 270):
            if self.value.startswith(f"rotate_{degrees}"):
                return degrees
        return 0

    @property
    def mirrored(self) -> bool:
        """Whether the transform includes a horizontal flip."""
        return self.value.endswith("flip_horizontal")


_ORIENTATION_TRANSFORMS: dict[int, GeometricTransform] = {
    1: GeometricTransform.IDENTITY,
    2: GeometricTransform.FLIP_HORIZONTAL,
    3: GeometricTransform.ROTATE_180,
    4: GeometricTransform.ROTATE_180_FLIP_HORIZONTAL,
    5: GeometricTransform.ROTATE_90_FLIP_HORIZONTAL,
    6: GeometricTransform.ROTATE_90,
    7: GeometricTransform.ROTATE_270_FLIP_HORIZONTAL,
    8: GeometricTransform.ROTATE_270,
}


def _first_value(value) -> int | None:
    """Reduce a raw tag value to its first integer.

    Codecs disagree on the shape: Pillow hands back an int, raw EXIF readers
    return the little/big endian bytes, some return a one-element tuple.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return value[0] if len(value) else None
    if isinstance(value, (tuple, list)):
        return _first_value(value[0]) if value else None
    return None


def transform_for_orientation(value) -> GeometricTransform:
    """Map an orientation tag value to its transform.

    Total over any input: values outside 1..8 or unreadable values map to
    ``IDENTITY``.
    """
    code = _first_value(value)
    if code is None:
        return GeometricTransform.IDENTITY
    return _ORIENTATION_TRANSFORMS.get(code, GeometricTransform.IDENTITY)
