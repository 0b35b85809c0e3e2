"""Exception raised when an image cannot be decoded for compression."""
from __future__ import annotations

from typing import Optional


class CompressionFailed(ValueError):
    """Image bytes could not be read, resized, or re-encoded.

    Raised for corrupt or unreadable input only. An image that is still over
    budget after the emergency pass is a best-effort result, not a failure.
    """

    def __init__(self, reason: str, *, input_size: int = 0, mime_type: Optional[str] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.input_size = input_size
        self.mime_type = mime_type


__all__ = ["CompressionFailed"]
