"""
Pydantic schemas for reporting validation outcomes.
"""

import hashlib

from pydantic import BaseModel, ConfigDict, Field

from .transforms import GeometricTransform
from .validation import Accepted, RejectionReason, ValidationResult


class OrientationInfo(BaseModel):
    """Orientation correction applied to an accepted upload."""

    transform: GeometricTransform = Field(description="Canonical transform applied")
    rotation_degrees: int = Field(
        default=0, description="Clockwise rotation applied (0, 90, 180, 270)"
    )
    mirrored: bool = Field(default=False, description="Whether a horizontal flip was applied")
    reencoded: bool = Field(description="Whether the payload was re-encoded after rotation")


class ValidationReport(BaseModel):
    """Outcome of validating one upload."""

    model_config = ConfigDict(frozen=True)

    filename: str | None = Field(default=None, description="Declared filename")
    accepted: bool = Field(description="Whether the upload passed every check")
    reason: RejectionReason | None = Field(
        default=None, description="Rejection reason code (None if accepted)"
    )
    message: str | None = Field(default=None, description="Default rejection message")
    base_name: str | None = Field(default=None, description="Filename without extension")
    extension: str | None = Field(default=None, description="Validated extension")
    media_type: str | None = Field(default=None, description="Media type of the payload")
    size_bytes: int | None = Field(default=None, description="Size of the accepted payload")
    width: int | None = None
    height: int | None = None
    sha256: str | None = Field(default=None, description="SHA-256 of the accepted payload")
    orientation: OrientationInfo | None = None

    @classmethod
    def from_result(cls, result: ValidationResult, filename: str | None = None) -> "ValidationReport":
        """Build a report; rejected uploads carry only the reason."""
        if not isinstance(result, Accepted):
            return cls(
                filename=filename,
                accepted=False,
                reason=result.reason,
                message=result.message,
            )

        width, height = result.image.size
        return cls(
            filename=filename,
            accepted=True,
            base_name=result.base_name,
            extension=result.extension,
            media_type=result.media_type,
            size_bytes=len(result.data),
            width=width,
            height=height,
            sha256=hashlib.sha256(result.data).hexdigest(),
            orientation=OrientationInfo(
                transform=result.transform,
                rotation_degrees=result.transform.rotation_degrees,
                mirrored=result.transform.mirrored,
                reencoded=result.reencoded,
            ),
        )
