"""
Markup sniffing for uploads that claim to be images.

A browser that content-sniffs a stored upload may render markup hidden in
it. The payload is read as UTF-8 text and searched for tags that have no
business appearing in a raster image. Binary pixel data can match by
accident and non-textual polyglots pass; this is a heuristic only.
"""

import re

SUSPICIOUS_MARKERS = re.compile(
    r"<script|<html|<head|<title|<body|<pre|<table|<a\s+href|<img|<plaintext|<cross\-domain\-policy",
    re.IGNORECASE | re.MULTILINE,
)


def find_suspicious_marker(data: bytes) -> str | None:
    """Return the first markup marker found in ``data``, or None."""
    text = data.decode("utf-8", errors="replace")
    match = SUSPICIOUS_MARKERS.search(text)
    return match.group(0) if match else None
