"""
EXIF orientation normalization.

Reads the orientation tag once, applies the matching rotate/flip to the
pixel buffer and clears the tag, so stored images are always upright and
carry no orientation metadata.
"""

from pathlib import Path

from image_intake.codec import DecodedImage, ImageCodec, PillowCodec
from image_intake.observability import get_logger
from image_intake.transforms import (
    ORIENTATION_TAG,
    GeometricTransform,
    transform_for_orientation,
)

logger = get_logger(__name__)


class OrientationNormalizer:
    """
    Applies the EXIF orientation of a decoded image to its pixels.

    Holds no per-image state; one instance can be shared across threads.
    """

    def __init__(self, codec: ImageCodec | None = None):
        self.codec = codec or PillowCodec()

    def normalize(
        self, image: DecodedImage, clear_tag_after_apply: bool = True
    ) -> GeometricTransform:
        """
        Rotate/flip ``image`` upright according to its orientation tag.

        Args:
            image: Decoded image handle, mutated in place.
            clear_tag_after_apply: Remove the tag once the transform is applied.
                Leaving it set makes a second call apply the transform again.

        Returns:
            The transform applied (``IDENTITY`` when there was nothing to do).
        """
        raw = self.codec.get_tag(image, ORIENTATION_TAG)
        if raw is None:
            return GeometricTransform.IDENTITY

        transform = transform_for_orientation(raw)
        if transform == GeometricTransform.IDENTITY:
            logger.debug("orientation_identity", orientation=raw)
            return transform

        self.codec.apply_transform(image, transform)
        if clear_tag_after_apply:
            self.codec.remove_tag(image, ORIENTATION_TAG)

        logger.info(
            "orientation_applied",
            orientation=raw,
            transform=transform.value,
            tag_cleared=clear_tag_after_apply,
        )
        return transform

    def normalize_file(
        self,
        source: str | Path,
        target: str | Path,
        fmt: str = "JPEG",
        clear_tag_after_apply: bool = True,
    ) -> GeometricTransform:
        """
        Normalize an image file, writing ``target`` only if it was transformed.

        Returns:
            The transform applied.
        """
        data = Path(source).read_bytes()
        with self.codec.decode(data) as image:
            transform = self.normalize(image, clear_tag_after_apply)
            if transform != GeometricTransform.IDENTITY:
                Path(target).write_bytes(self.codec.encode(image, fmt))
                logger.info(
                    "orientation_file_written",
                    source=str(source),
                    target=str(target),
                    transform=transform.value,
                )
        return transform
