"""
Image preprocessing utilities.
"""

from .orientation import OrientationNormalizer

__all__ = ["OrientationNormalizer"]
