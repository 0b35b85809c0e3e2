"""
Content part DTOs used inside a :class:`Message`.

A part is either text or a single image. ``ImagePart.data`` always holds fully
decoded binary; base64 or data-URI encoding is left to the adapter that puts the
image on the wire.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TextPart:
    """A run of prompt text."""

    text: str

    def is_blank(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True)
class ImagePart:
    """One encoded image.

    Attributes:
        data: Raw encoded image bytes (PNG, JPEG, ...). Never a data URI.
        mime_type: Declared MIME type. Adapters that care about the true
            format sniff ``data`` instead of trusting this value.
    """

    data: bytes
    mime_type: str = "image/png"

    def __post_init__(self) -> None:
        if isinstance(self.data, (bytearray, memoryview)):
            object.__setattr__(self, "data", bytes(self.data))
        if not isinstance(self.data, bytes):
            raise TypeError("ImagePart.data must be decoded bytes, not a data URI or string")

    @property
    def size(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"ImagePart(mime_type={self.mime_type!r}, size={self.size})"


Part = Union[TextPart, ImagePart]


__all__ = ["TextPart", "ImagePart", "Part"]
