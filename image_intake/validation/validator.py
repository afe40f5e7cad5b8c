"""
Upload validation pipeline.

Decides whether a client-submitted blob is a genuine raster image that is
safe to store, and hands back upright pixel data with the EXIF orientation
tag cleared.
"""

import contextlib
from typing import BinaryIO, Iterator

from image_intake.codec import DecodedImage, ImageCodec, PillowCodec, formats_for_types
from image_intake.config import Settings, get_settings
from image_intake.observability import get_logger
from image_intake.preprocessing import OrientationNormalizer
from image_intake.transforms import GeometricTransform

from .result import Accepted, Rejected, RejectionReason, ValidationResult
from .sniffing import find_suspicious_marker
from .upload import UploadCandidate

logger = get_logger(__name__)


def split_extension(filename: str | None) -> tuple[str, str]:
    """Split ``filename`` into (base name, extension), keeping the case.

    The extension runs from the last dot of the final path component, so a
    bare ".jpg" is all extension. A trailing dot yields no extension.
    """
    if not filename:
        return "", ""
    dot = filename.rfind(".")
    separator = max(filename.rfind("/"), filename.rfind("\\"))
    if dot <= separator or dot == len(filename) - 1:
        return filename, ""
    return filename[:dot], filename[dot:]


@contextlib.contextmanager
def _rewound(stream: BinaryIO) -> Iterator[BinaryIO]:
    """Reset ``stream`` to its start on exit so the caller can read it again."""
    try:
        yield stream
    finally:
        # A caller may close the stream from another thread; nothing to rewind then
        with contextlib.suppress(ValueError):
            if stream.seekable():
                stream.seek(0)


def _is_readable(stream: BinaryIO | None) -> bool:
    if stream is None:
        return False
    try:
        return stream.readable()
    except ValueError:
        # closed file
        return False


class UploadValidator:
    """
    Runs the upload checks in order; the first failure wins.

    1. declared MIME type
    2. filename extension
    3. stream readability
    4. minimum declared size
    5. markup sniffing
    6. decode + EXIF orientation normalization

    Instances hold only configuration and are safe to share between threads.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        codec: ImageCodec | None = None,
        normalizer: OrientationNormalizer | None = None,
    ):
        settings = settings or get_settings()
        self.content_types = settings.content_types
        self.extensions = settings.extensions
        self.min_upload_bytes = settings.min_upload_bytes
        self.output_format = settings.output_format
        self.codec = codec or PillowCodec(
            jpeg_quality=settings.jpeg_quality,
            formats=formats_for_types(settings.content_types),
        )
        self.normalizer = normalizer or OrientationNormalizer(self.codec)

    def validate(self, candidate: UploadCandidate) -> ValidationResult:
        """Validate one upload. Never raises for bad input."""
        log = logger.bind(
            filename=candidate.filename,
            content_type=candidate.content_type,
            content_length=candidate.content_length,
        )

        if (candidate.content_type or "").lower() not in self.content_types:
            return self._reject(RejectionReason.INVALID_TYPE, log, check="content_type")

        base_name, extension = split_extension(candidate.filename)
        if extension.lower() not in self.extensions:
            return self._reject(
                RejectionReason.INVALID_TYPE, log, check="extension", extension=extension
            )

        if not _is_readable(candidate.stream):
            return self._reject(RejectionReason.UNREADABLE, log, check="readable")

        with _rewound(candidate.stream) as stream:
            if candidate.content_length < self.min_upload_bytes:
                return self._reject(
                    RejectionReason.TOO_SMALL,
                    log,
                    check="min_size",
                    min_bytes=self.min_upload_bytes,
                )

            try:
                data = stream.read(candidate.content_length)
                marker = find_suspicious_marker(data)
            except Exception as e:
                log.warning("upload_read_error", error=str(e), error_type=type(e).__name__)
                return self._reject(RejectionReason.READ_FAILURE, log, check="read")

            if marker is not None:
                return self._reject(
                    RejectionReason.SUSPICIOUS_CONTENT, log, check="sniff", marker=marker
                )

            return self._decode_and_normalize(data, base_name, extension, log)

    def _decode_and_normalize(
        self, data: bytes, base_name: str, extension: str, log
    ) -> ValidationResult:
        image: DecodedImage | None = None
        try:
            image = self.codec.decode(data)
            if image is None:
                return self._reject(RejectionReason.NOT_A_DECODABLE_IMAGE, log, check="decode")

            transform = self.normalizer.normalize(image, clear_tag_after_apply=True)
            if transform == GeometricTransform.IDENTITY:
                payload, fmt = data, image.source_format
            else:
                payload, fmt = self.codec.encode(image, self.output_format), self.output_format

        except Exception as e:
            if image is not None:
                image.close()
            log.warning("upload_decode_error", error=str(e), error_type=type(e).__name__)
            return self._reject(RejectionReason.NOT_A_DECODABLE_IMAGE, log, check="decode")

        log.info(
            "upload_accepted",
            transform=transform.value,
            reencoded=transform != GeometricTransform.IDENTITY,
            size=image.size,
            output_bytes=len(payload),
        )
        return Accepted(
            data=payload,
            image=image,
            base_name=base_name,
            extension=extension,
            transform=transform,
            format=fmt,
        )

    @staticmethod
    def _reject(reason: RejectionReason, log, **context) -> Rejected:
        log.info("upload_rejected", reason=reason.value, **context)
        return Rejected(reason=reason)


def validate_upload(candidate: UploadCandidate, settings: Settings | None = None) -> ValidationResult:
    """Validate ``candidate`` with a default Pillow-backed validator."""
    return UploadValidator(settings=settings).validate(candidate)
