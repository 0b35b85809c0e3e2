"""Byte and dimension budget handed to the image compression engine."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CompressionTarget:
    """Budget an encoded image must fit before a backend will accept it.

    Attributes:
        max_bytes: Upper bound on the encoded size.
        min_width: Width floor; resizing never goes below it.
        min_height: Height floor; resizing never goes below it.
    """

    max_bytes: int
    min_width: int = 800
    min_height: int = 600

    def __post_init__(self) -> None:
        if self.max_bytes <= 0:
            raise ValueError("max_bytes must be positive")
        if self.min_width < 1 or self.min_height < 1:
            raise ValueError("dimension floors must be at least 1 pixel")

    def scaled(self, factor: float) -> "CompressionTarget":
        """Return a copy with ``max_bytes`` multiplied by ``factor``."""
        return CompressionTarget(max(1, int(self.max_bytes * factor)), self.min_width, self.min_height)


__all__ = ["CompressionTarget"]
