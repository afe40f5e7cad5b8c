#!/usr/bin/env python3
"""
CLI for validating image files and normalizing their orientation.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Iterator

from image_intake import UploadCandidate, UploadValidator
from image_intake.config import get_settings
from image_intake.observability import setup_logging
from image_intake.schemas import ValidationReport
from image_intake.validation import Accepted

IMAGE_PATTERNS = ["*.jpg", "*.jpeg", "*.png", "*.JPG", "*.JPEG", "*.PNG"]


def iter_images(folder: Path) -> Iterator[Path]:
    """Yield image files under ``folder``, each once, in sorted order."""
    seen = set()
    for pattern in IMAGE_PATTERNS:
        seen.update(folder.rglob(pattern))
    yield from sorted(seen)


def format_report(report: ValidationReport, verbose: bool = False) -> str:
    """Render a report for the terminal."""
    lines = [f"File: {report.filename}"]

    if not report.accepted:
        lines.append(f"Rejected: {report.reason.value} ({report.message})")
        return "\n".join(lines)

    lines.append("Accepted")
    if report.orientation and report.orientation.reencoded:
        lines.append(f"  Orientation fixed: {report.orientation.transform.value}")

    if verbose:
        lines.append(f"  Size: {report.width}x{report.height}, {report.size_bytes} bytes")
        lines.append(f"  Media type: {report.media_type}")
        lines.append(f"  SHA-256: {report.sha256}")

    return "\n".join(lines)


def output_path(output_dir: Path, result: Accepted) -> Path:
    """Target path for an accepted payload, keeping the validated base name."""
    extension = result.extension
    if result.reencoded and result.format == "JPEG":
        extension = ".jpg"
    return output_dir / f"{Path(result.base_name).name}{extension}"


def process_file(
    path: Path, validator: UploadValidator, output_dir: Path | None
) -> ValidationReport:
    candidate = UploadCandidate.from_path(path)
    with validator.validate(candidate) as result:
        report = ValidationReport.from_result(result, filename=str(path))
        if output_dir is not None and isinstance(result, Accepted):
            output_dir.mkdir(parents=True, exist_ok=True)
            output_path(output_dir, result).write_bytes(result.data)
    return report


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Validate uploaded images and normalize EXIF orientation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate a single file
  python cli.py photo.jpg

  # Validate a folder, JSON output
  python cli.py ./uploads/ --json -o report.json

  # Write accepted (upright) images to a folder
  python cli.py ./uploads/ --output-dir ./accepted
        """,
    )

    parser.add_argument(
        "input",
        type=str,
        help="Image file or folder to validate",
    )
    parser.add_argument(
        "--output-dir",
        "-d",
        type=str,
        default=None,
        help="Write accepted payloads to this folder",
    )
    parser.add_argument(
        "--json",
        "-j",
        action="store_true",
        help="JSON output",
    )
    parser.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="Write JSON output to this file (with --json)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Detailed output",
    )

    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(
        json_format=settings.log_json,
        log_level="DEBUG" if args.verbose else "ERROR",
        stream=sys.stderr,
    )

    validator = UploadValidator(settings=settings)
    input_path = Path(args.input)
    output_dir = Path(args.output_dir) if args.output_dir else None

    if input_path.is_file():
        paths = [input_path]
    elif input_path.is_dir():
        paths = list(iter_images(input_path))
    else:
        print(f"Error: file or folder not found: {input_path}", file=sys.stderr)
        return 1

    reports = [process_file(p, validator, output_dir) for p in paths]

    if args.json:
        output = [r.model_dump(mode="json") for r in reports]
        if input_path.is_file():
            output = output[0]
        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                json.dump(output, f, indent=2, ensure_ascii=False)
            print(f"Report saved to: {args.output}")
        else:
            print(json.dumps(output, indent=2, ensure_ascii=False))
    else:
        if input_path.is_dir():
            accepted = sum(1 for r in reports if r.accepted)
            print(f"\nValidated: {len(reports)} files")
            print(f"Accepted: {accepted} | Rejected: {len(reports) - accepted}\n")
        for report in reports:
            if input_path.is_dir():
                print("-" * 50)
            print(format_report(report, verbose=args.verbose))

    return 0 if all(r.accepted for r in reports) else 1


if __name__ == "__main__":
    sys.exit(main())
