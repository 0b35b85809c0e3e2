"""Image compression engine: fit an encoded image under a byte budget.

External dependencies
---------------------
- Pillow (``PIL.Image``) for decoding, resizing and re-encoding.

Algorithm
---------
Inputs already within ``target.max_bytes`` are returned untouched. Otherwise
an initial linear scale of ``sqrt(max_bytes / size)`` is biased by 0.6 (input
over twice the budget) or 0.75, and up to seven attempts resize and re-encode
the original. Each miss multiplies the scale by 0.75 and lowers JPEG quality by
15 (floor 40). An attempt succeeds at 95% of the budget. If every attempt
misses, one emergency pass (scale at most 0.4, quality 30) is accepted
whatever its size.

Images are never upscaled and never shrunk below ``target.min_width`` x
``target.min_height``; aspect ratio is preserved. Budgets are best effort.

Failure modes
-------------
Unreadable or corrupt input raises :class:`CompressionFailed`; dimension-read
errors are never propagated raw.
"""
from __future__ import annotations

import io
import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..base.errors import CompressionFailed
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import CompressionTarget
from .formats import JPEG, PNG, WIRE_FORMATS, detect_image_mime

MAX_ATTEMPTS = 7
SUCCESS_MARGIN = 0.95
INITIAL_QUALITY = 70
QUALITY_STEP = 15
MIN_QUALITY = 40
SCALE_DECAY = 0.75
EMERGENCY_MAX_SCALE = 0.4
EMERGENCY_QUALITY = 30
LOSSLESS_CEILING_BYTES = 1024 * 1024

# Budgets used by the messages-style backend
FOR_TARGET_BYTES = int(3.5 * 1024 * 1024)
FOR_TARGET_HARD_LIMIT_BYTES = int(4.5 * 1024 * 1024)
FOR_TARGET_FORCED_BYTES = 2 * 1024 * 1024
FOR_TARGET_RETRIES = 3
FOR_TARGET_SHRINK = 0.7


@dataclass(frozen=True)
class CompressionResult:
    """Outcome of one engine call.

    Attributes:
        data: Encoded image bytes (the input itself when unchanged).
        mime_type: MIME type of ``data``; may differ from the input's.
        width: Output width in pixels, ``None`` when the input was not decoded.
        height: Output height in pixels, ``None`` when the input was not decoded.
        attempts: Encode passes performed (0 when unchanged).
        emergency: True when the emergency pass produced ``data``.
    """

    data: bytes
    mime_type: str
    width: Optional[int] = None
    height: Optional[int] = None
    attempts: int = 0
    emergency: bool = False

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def changed(self) -> bool:
        return self.attempts > 0


def needs_compression(data: bytes, max_bytes: Optional[int]) -> bool:
    return max_bytes is not None and len(data) > max_bytes


class ImageCompressionEngine:
    """Iterative resize / re-encode search under a byte budget.

    Instances hold only a logger; calls share no state and are safe to run
    concurrently in worker threads.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or get_logger("providers.images")

    def compress(self, data: bytes, mime_type: str, target: CompressionTarget) -> CompressionResult:
        """Return ``data`` re-encoded to fit ``target`` (best effort).

        Raises:
            CompressionFailed: when ``data`` cannot be decoded.
        """
        size = len(data)
        if size <= target.max_bytes:
            return CompressionResult(data=data, mime_type=mime_type)

        ctx = LogContext(extra={"input_bytes": size, "max_bytes": target.max_bytes})
        image = _decode(data, mime_type)
        try:
            width, height = image.size
            source_mime = detect_image_mime(data) or mime_type
            lossless = source_mime == PNG and size < LOSSLESS_CEILING_BYTES
            fmt, out_mime = ("PNG", PNG) if lossless else ("JPEG", JPEG)
            normalized_log_event(
                self._logger,
                "image.compress.start",
                ctx,
                phase="start",
                emitted=False,
                width=width,
                height=height,
                output_format=out_mime,
            )

            scale = math.sqrt(target.max_bytes / size) * (0.6 if size > 2 * target.max_bytes else 0.75)
            quality = INITIAL_QUALITY
            budget = target.max_bytes * SUCCESS_MARGIN
            for attempt in range(1, MAX_ATTEMPTS + 1):
                dims = _scaled_dimensions(width, height, scale, target)
                encoded = _encode(image, dims, fmt, quality)
                normalized_log_event(
                    self._logger,
                    "image.compress.attempt",
                    ctx,
                    phase="compress",
                    attempt=attempt,
                    emitted=False,
                    width=dims[0],
                    height=dims[1],
                    quality=quality,
                    output_bytes=len(encoded),
                    level=logging.DEBUG,
                )
                if len(encoded) <= budget:
                    return self._done(ctx, CompressionResult(encoded, out_mime, dims[0], dims[1], attempt))
                scale *= SCALE_DECAY
                quality = max(MIN_QUALITY, quality - QUALITY_STEP)

            dims = _scaled_dimensions(width, height, min(EMERGENCY_MAX_SCALE, target.max_bytes / size), target)
            encoded = _encode(image, dims, "JPEG", EMERGENCY_QUALITY)
            normalized_log_event(
                self._logger,
                "image.compress.emergency",
                ctx,
                phase="compress",
                attempt=MAX_ATTEMPTS + 1,
                emitted=False,
                width=dims[0],
                height=dims[1],
                output_bytes=len(encoded),
                over_budget=len(encoded) > target.max_bytes,
                level=logging.WARNING,
            )
            return self._done(
                ctx, CompressionResult(encoded, JPEG, dims[0], dims[1], MAX_ATTEMPTS + 1, emergency=True)
            )
        finally:
            image.close()

    def compress_for_target(
        self,
        data: bytes,
        mime_type: str,
        *,
        target_bytes: int = FOR_TARGET_BYTES,
        hard_limit_bytes: int = FOR_TARGET_HARD_LIMIT_BYTES,
        forced_bytes: int = FOR_TARGET_FORCED_BYTES,
        min_width: int = 800,
        min_height: int = 600,
    ) -> CompressionResult:
        """Compress for a backend whose limit is tighter than the general default.

        Runs :meth:`compress` against ``target_bytes``; while the result still
        exceeds ``target_bytes``, retries from the original up to three times
        with the budget multiplied by 0.7 each time. A result still above
        ``hard_limit_bytes`` gets one forced pass at ``forced_bytes``.
        """
        target = CompressionTarget(target_bytes, min_width, min_height)
        if len(data) <= target.max_bytes:
            return CompressionResult(data=data, mime_type=mime_type)
        result = self.compress(data, mime_type, target)
        retries = 0
        while result.size > target_bytes and retries < FOR_TARGET_RETRIES:
            target = target.scaled(FOR_TARGET_SHRINK)
            result = self.compress(data, mime_type, target)
            retries += 1
        if result.size > hard_limit_bytes:
            result = self.compress(data, mime_type, CompressionTarget(forced_bytes, min_width, min_height))
        return result

    def _done(self, ctx: LogContext, result: CompressionResult) -> CompressionResult:
        normalized_log_event(
            self._logger,
            "image.compress.end",
            ctx,
            phase="finalize",
            attempt=result.attempts,
            emitted=True,
            output_bytes=result.size,
            width=result.width,
            height=result.height,
            mime_type=result.mime_type,
        )
        return result


def _decode(data: bytes, mime_type: str) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as exc:
        raise CompressionFailed(f"cannot decode image: {exc}", input_size=len(data), mime_type=mime_type) from exc
    if image.width < 1 or image.height < 1:
        image.close()
        raise CompressionFailed("image has no pixels", input_size=len(data), mime_type=mime_type)
    return image


def _scaled_dimensions(width: int, height: int, scale: float, target: CompressionTarget) -> Tuple[int, int]:
    """Apply ``scale`` within ``[floor, 1.0]``, preserving aspect ratio."""
    floor_scale = max(target.min_width / width, target.min_height / height)
    effective = min(1.0, max(scale, floor_scale))
    return max(1, math.floor(width * effective)), max(1, math.floor(height * effective))


def _flatten_to_rgb(image: Image.Image) -> Image.Image:
    if image.mode in {"RGBA", "LA"} or (image.mode == "P" and "transparency" in image.info):
        alpha = image.convert("RGBA")
        background = Image.new("RGB", alpha.size, (255, 255, 255))
        background.paste(alpha, mask=alpha.split()[-1])
        return background
    return image.convert("RGB")


def _encode(image: Image.Image, dims: Tuple[int, int], fmt: str, quality: int) -> bytes:
    if fmt == "JPEG":
        prepared = _flatten_to_rgb(image)
    elif image.mode in {"RGB", "RGBA", "L", "LA"}:
        prepared = image
    else:
        prepared = image.convert("RGBA")
    if prepared.size != dims:
        prepared = prepared.resize(dims, Image.Resampling.LANCZOS)
    out = io.BytesIO()
    if fmt == "JPEG":
        prepared.save(out, format="JPEG", quality=quality, optimize=True)
    else:
        prepared.save(out, format="PNG", optimize=True)
    return out.getvalue()


def transcode_to_jpeg(data: bytes, quality: int = 85) -> bytes:
    """Re-encode any decodable image as JPEG at its original size."""
    image = _decode(data, "application/octet-stream")
    try:
        return _encode(image, image.size, "JPEG", quality)
    finally:
        image.close()


_DEFAULT_ENGINE: Optional[ImageCompressionEngine] = None


def wire_image(data: bytes, declared: str = PNG) -> Tuple[bytes, str]:
    """Return ``(bytes, mime)`` in a format every backend accepts.

    Sniffed formats outside ``WIRE_FORMATS`` (BMP, TIFF) are re-encoded as JPEG;
    undetectable bytes pass through with the declared type.
    """
    detected = detect_image_mime(data)
    if detected is None:
        return data, declared
    if detected in WIRE_FORMATS:
        return data, detected
    return transcode_to_jpeg(data), JPEG


def _default_engine() -> ImageCompressionEngine:
    global _DEFAULT_ENGINE
    if _DEFAULT_ENGINE is None:
        _DEFAULT_ENGINE = ImageCompressionEngine()
    return _DEFAULT_ENGINE


def compress(data: bytes, mime_type: str, target: CompressionTarget) -> CompressionResult:
    """Module-level shortcut for :meth:`ImageCompressionEngine.compress`."""
    return _default_engine().compress(data, mime_type, target)


def compress_for_target(data: bytes, mime_type: str) -> CompressionResult:
    """Module-level shortcut for :meth:`ImageCompressionEngine.compress_for_target`."""
    return _default_engine().compress_for_target(data, mime_type)


__all__ = [
    "CompressionResult",
    "ImageCompressionEngine",
    "compress",
    "compress_for_target",
    "needs_compression",
    "transcode_to_jpeg",
    "wire_image",
    "MAX_ATTEMPTS",
    "SUCCESS_MARGIN",
    "FOR_TARGET_BYTES",
    "FOR_TARGET_HARD_LIMIT_BYTES",
    "FOR_TARGET_FORCED_BYTES",
]
