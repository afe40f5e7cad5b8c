"""
Upload validation.
"""

from .result import Accepted, Rejected, RejectionReason, ValidationResult
from .upload import UploadCandidate
from .validator import UploadValidator, validate_upload

__all__ = [
    "Accepted",
    "Rejected",
    "RejectionReason",
    "UploadCandidate",
    "UploadValidator",
    "ValidationResult",
    "validate_upload",
]
