"""Image format sniffing and base64 / data-URI helpers.

Declared MIME types are unreliable (screenshots saved as ``.png`` that are
really JPEG, clipboard data with no type at all), and some backends reject a
request whose declared type disagrees with the bytes. Adapters therefore sniff
magic bytes before putting an image on the wire.
"""
from __future__ import annotations

import base64
import binascii
import re
from typing import Optional, Tuple

JPEG = "image/jpeg"
PNG = "image/png"
GIF = "image/gif"
WEBP = "image/webp"
BMP = "image/bmp"
TIFF = "image/tiff"

WIRE_FORMATS = frozenset({JPEG, PNG, GIF, WEBP})

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(;[^,;]+)*?);base64,(?P<data>.*)$", re.S)


def detect_image_mime(data: bytes) -> Optional[str]:
    """Return the MIME type identified from magic bytes, or ``None``."""
    if data.startswith(b"\xff\xd8"):
        return JPEG
    if data.startswith(b"\x89PNG"):
        return PNG
    if data.startswith(b"GIF8"):
        return GIF
    if data.startswith(b"RIFF") and data[8:12] == b"WEBP":
        return WEBP
    if data.startswith(b"BM"):
        return BMP
    if data.startswith(b"II*\x00") or data.startswith(b"MM\x00*"):
        return TIFF
    return None


def wire_mime_type(data: bytes, default: str = PNG) -> str:
    """Return a MIME type safe to declare to a backend.

    Sniffed formats outside ``WIRE_FORMATS`` are reported as JPEG; the bytes
    must then be re-encoded (``images.compression.wire_image``). Undetectable
    bytes fall back to ``default``.
    """
    detected = detect_image_mime(data)
    if detected is None:
        return default
    return detected if detected in WIRE_FORMATS else JPEG


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def build_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{to_base64(data)}"


def parse_data_uri(uri: str) -> Tuple[bytes, str]:
    """Decode a ``data:<mime>;base64,<payload>`` URI into ``(bytes, mime)``.

    Raises:
        ValueError: when ``uri`` is not a base64 data URI.
    """
    match = _DATA_URI_RE.match(uri.strip())
    if match is None:
        raise ValueError("not a base64 data URI")
    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except binascii.Error as exc:
        raise ValueError("data URI payload is not valid base64") from exc
    return data, match.group("mime") or wire_mime_type(data)


__all__ = [
    "JPEG",
    "PNG",
    "GIF",
    "WEBP",
    "BMP",
    "TIFF",
    "WIRE_FORMATS",
    "detect_image_mime",
    "wire_mime_type",
    "to_base64",
    "build_data_uri",
    "parse_data_uri",
]
