"""Image handling: format sniffing and byte-budget compression."""

from .compression import (
    CompressionResult,
    ImageCompressionEngine,
    compress,
    compress_for_target,
    needs_compression,
    transcode_to_jpeg,
    wire_image,
)
from .formats import build_data_uri, detect_image_mime, parse_data_uri, to_base64, wire_mime_type

__all__ = [
    "CompressionResult",
    "ImageCompressionEngine",
    "compress",
    "compress_for_target",
    "needs_compression",
    "transcode_to_jpeg",
    "wire_image",
    "build_data_uri",
    "detect_image_mime",
    "parse_data_uri",
    "to_base64",
    "wire_mime_type",
]
