from __future__ import annotations

import numpy as np
import pytest
from PIL import Image

from image_intake.codec import CodecError, DecodedImage, PillowCodec
from image_intake.preprocessing import OrientationNormalizer
from image_intake.transforms import (
    ORIENTATION_TAG,
    GeometricTransform,
    transform_for_orientation,
)
from tests.conftest import FakeCodec, FakeHandle, encode_image

SOURCE = np.array([[0, 1, 2], [3, 4, 5]], dtype=np.uint8)

EXPECTED_TRANSFORMS = {
    1: GeometricTransform.IDENTITY,
    2: GeometricTransform.FLIP_HORIZONTAL,
    3: GeometricTransform.ROTATE_180,
    4: GeometricTransform.ROTATE_180_FLIP_HORIZONTAL,
    5: GeometricTransform.ROTATE_90_FLIP_HORIZONTAL,
    6: GeometricTransform.ROTATE_90,
    7: GeometricTransform.ROTATE_270_FLIP_HORIZONTAL,
    8: GeometricTransform.ROTATE_270,
}

# Upright pixels for SOURCE stored with each orientation
EXPECTED_PIXELS = {
    2: np.fliplr(SOURCE),
    3: np.rot90(SOURCE, 2),
    4: np.flipud(SOURCE),
    5: SOURCE.T,
    6: np.array([[3, 0], [4, 1], [5, 2]], dtype=np.uint8),
    7: np.rot90(SOURCE, 2).T,
    8: np.array([[2, 5], [1, 4], [0, 3]], dtype=np.uint8),
}


def _tagged(orientation: int | None) -> DecodedImage:
    exif = Image.Exif()
    if orientation is not None:
        exif[ORIENTATION_TAG] = orientation
    return DecodedImage(image=Image.fromarray(SOURCE), exif=exif)


@pytest.mark.parametrize("orientation,expected", sorted(EXPECTED_TRANSFORMS.items()))
def test_orientation_table(orientation, expected):
    assert transform_for_orientation(orientation) == expected


@pytest.mark.parametrize("value", [0, 9, -1, 255, 1000, None, "6", True, b"", (), 6.0])
def test_values_outside_table_map_to_identity(value):
    assert transform_for_orientation(value) == GeometricTransform.IDENTITY


def test_raw_tag_shapes_use_first_value():
    assert transform_for_orientation(b"\x06\x00") == GeometricTransform.ROTATE_90
    assert transform_for_orientation((8,)) == GeometricTransform.ROTATE_270
    assert transform_for_orientation([3, 1]) == GeometricTransform.ROTATE_180


def test_transform_reporting_properties():
    assert GeometricTransform.IDENTITY.rotation_degrees == 0
    assert GeometricTransform.ROTATE_90.rotation_degrees == 90
    assert GeometricTransform.ROTATE_270_FLIP_HORIZONTAL.rotation_degrees == 270
    assert GeometricTransform.FLIP_HORIZONTAL.rotation_degrees == 0
    assert GeometricTransform.FLIP_HORIZONTAL.mirrored
    assert GeometricTransform.ROTATE_180_FLIP_HORIZONTAL.mirrored
    assert not GeometricTransform.ROTATE_180.mirrored


@pytest.mark.parametrize("orientation", sorted(EXPECTED_PIXELS))
def test_normalize_produces_upright_pixels(orientation):
    image = _tagged(orientation)
    transform = OrientationNormalizer(PillowCodec()).normalize(image)

    assert transform == EXPECTED_TRANSFORMS[orientation]
    np.testing.assert_array_equal(np.array(image.image), EXPECTED_PIXELS[orientation])
    assert ORIENTATION_TAG not in image.exif


def test_absent_tag_is_identity_without_mutation():
    codec = FakeCodec()
    handle = FakeHandle()

    assert OrientationNormalizer(codec).normalize(handle) == GeometricTransform.IDENTITY
    assert handle.applied == []
    assert handle.tags == {}


def test_tag_one_leaves_image_and_tag_alone():
    image = _tagged(1)
    original = image.image

    assert OrientationNormalizer(PillowCodec()).normalize(image) == GeometricTransform.IDENTITY
    assert image.image is original
    assert image.exif[ORIENTATION_TAG] == 1


def test_unknown_tag_value_is_identity():
    handle = FakeHandle({ORIENTATION_TAG: 42})

    assert OrientationNormalizer(FakeCodec()).normalize(handle) == GeometricTransform.IDENTITY
    assert handle.applied == []
    assert handle.tags == {ORIENTATION_TAG: 42}


def test_normalize_is_idempotent_when_clearing():
    normalizer = OrientationNormalizer(FakeCodec())
    handle = FakeHandle({ORIENTATION_TAG: 6})

    first = normalizer.normalize(handle)
    second = normalizer.normalize(handle)

    assert first == GeometricTransform.ROTATE_90
    assert second == GeometricTransform.IDENTITY
    assert handle.applied == [GeometricTransform.ROTATE_90]


def test_without_clearing_the_transform_is_applied_again():
    normalizer = OrientationNormalizer(PillowCodec())
    image = _tagged(6)

    assert normalizer.normalize(image, clear_tag_after_apply=False) == GeometricTransform.ROTATE_90
    assert image.exif[ORIENTATION_TAG] == 6
    assert normalizer.normalize(image, clear_tag_after_apply=False) == GeometricTransform.ROTATE_90

    # two clockwise quarter turns
    np.testing.assert_array_equal(np.array(image.image), np.rot90(SOURCE, 2))


def test_codec_failure_propagates():
    codec = FakeCodec(transform_error=CodecError("boom"))
    handle = FakeHandle({ORIENTATION_TAG: 3})

    with pytest.raises(CodecError, match="boom"):
        OrientationNormalizer(codec).normalize(handle)
    assert handle.tags == {ORIENTATION_TAG: 3}


def test_normalize_file_writes_rotated_image(tmp_path):
    source = tmp_path / "portrait.jpg"
    target = tmp_path / "upright.jpg"
    source.write_bytes(encode_image("JPEG", size=(48, 32), orientation=6))

    transform = OrientationNormalizer().normalize_file(source, target)

    assert transform == GeometricTransform.ROTATE_90
    with Image.open(target) as written:
        assert written.size == (32, 48)
        assert written.getexif().get(ORIENTATION_TAG) is None


def test_normalize_file_skips_upright_image(tmp_path):
    source = tmp_path / "landscape.jpg"
    target = tmp_path / "out.jpg"
    source.write_bytes(encode_image("JPEG"))

    assert OrientationNormalizer().normalize_file(source, target) == GeometricTransform.IDENTITY
    assert not target.exists()
