"""
Validation outcome: exactly one of ``Accepted`` or ``Rejected``.
"""

from dataclasses import dataclass
from enum import Enum

from PIL import Image

from image_intake.codec import DecodedImage
from image_intake.transforms import GeometricTransform


class RejectionReason(str, Enum):
    """Why an upload was refused."""

    INVALID_TYPE = "invalid_type"
    UNREADABLE = "unreadable"
    TOO_SMALL = "too_small"
    SUSPICIOUS_CONTENT = "suspicious_content"
    READ_FAILURE = "read_failure"
    NOT_A_DECODABLE_IMAGE = "not_a_decodable_image"

    @property
    def message(self) -> str:
        """Default English message; callers localize by reason code."""
        return _MESSAGES[self]


# Multi-frame phone JPEGs open as MPO but are plain JPEG files on disk
_MEDIA_TYPES = {"MPO": "image/jpeg"}


_MESSAGES = {
    RejectionReason.INVALID_TYPE: "Invalid file type.",
    RejectionReason.UNREADABLE: "File could not be read.",
    RejectionReason.TOO_SMALL: "File too small, invalid file?",
    RejectionReason.SUSPICIOUS_CONTENT: "Invalid file.",
    RejectionReason.READ_FAILURE: "Unhandled error while reading the file.",
    RejectionReason.NOT_A_DECODABLE_IMAGE: "File is not a readable image.",
}


@dataclass(frozen=True)
class Accepted:
    """Upload passed every check.

    ``data`` is the original payload, or the re-encoded pixels when a
    rotation was applied. The caller owns ``image`` and should ``close()``
    it (or use the result as a context manager) once done.
    """

    data: bytes
    image: DecodedImage
    base_name: str
    extension: str
    transform: GeometricTransform
    format: str | None

    accepted = True

    @property
    def reencoded(self) -> bool:
        return self.transform != GeometricTransform.IDENTITY

    @property
    def media_type(self) -> str | None:
        if not self.format:
            return None
        return _MEDIA_TYPES.get(self.format) or Image.MIME.get(self.format)

    def close(self) -> None:
        self.image.close()

    def __enter__(self) -> "Accepted":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


@dataclass(frozen=True)
class Rejected:
    """Upload failed the first check listed in ``reason``."""

    reason: RejectionReason

    accepted = False

    @property
    def message(self) -> str:
        return self.reason.message

    def close(self) -> None:
        pass

    def __enter__(self) -> "Rejected":
        return self

    def __exit__(self, *exc_info) -> None:
        pass


ValidationResult = Accepted | Rejected
