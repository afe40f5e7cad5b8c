"""
Upload candidate: the bytes and declared metadata of one submitted file.
"""

import io
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO


@dataclass(frozen=True)
class UploadCandidate:
    """A file as submitted by a client, before any validation.

    Every field is what the client declared; none of it is trusted.
    """

    stream: BinaryIO
    content_type: str | None
    filename: str | None
    content_length: int

    @classmethod
    def from_bytes(
        cls, data: bytes, filename: str | None, content_type: str | None
    ) -> "UploadCandidate":
        return cls(
            stream=io.BytesIO(data),
            content_type=content_type,
            filename=filename,
            content_length=len(data),
        )

    @classmethod
    def from_path(cls, path: str | Path, content_type: str | None = None) -> "UploadCandidate":
        """Build a candidate from a local file, guessing the type from its name."""
        path = Path(path)
        if content_type is None:
            content_type, _ = mimetypes.guess_type(path.name)
        return cls.from_bytes(path.read_bytes(), path.name, content_type)
