"""
image-intake: validation and EXIF orientation normalization for uploaded images.
"""

# Load .env file early, before settings are read
from dotenv import load_dotenv
load_dotenv()

__version__ = "0.1.0"

from .codec import CodecError, DecodedImage, ImageCodec, PillowCodec
from .preprocessing import OrientationNormalizer
from .transforms import ORIENTATION_TAG, GeometricTransform, transform_for_orientation
from .validation import (
    Accepted,
    Rejected,
    RejectionReason,
    UploadCandidate,
    UploadValidator,
    ValidationResult,
    validate_upload,
)

__all__ = [
    "ORIENTATION_TAG",
    "Accepted",
    "CodecError",
    "DecodedImage",
    "GeometricTransform",
    "ImageCodec",
    "OrientationNormalizer",
    "PillowCodec",
    "Rejected",
    "RejectionReason",
    "UploadCandidate",
    "UploadValidator",
    "ValidationResult",
    "transform_for_orientation",
    "validate_upload",
]
