"""Unified adapter error taxonomy public surface.

This module re-exports the one-class-per-file implementations under
``vision_providers.base.errors_parts`` to maintain a stable import path while
enforcing the one-class-per-file governance rule.
"""

from .errors_parts.error_kind import ErrorKind
from .errors_parts.adapter_error import AdapterError
from .errors_parts.compression_failed import CompressionFailed
from .errors_parts.stream_state_error import StreamStateError
from .errors_parts.classification import classify_exception, classify_status, wrap_exception

__all__ = [
    "ErrorKind",
    "AdapterError",
    "CompressionFailed",
    "StreamStateError",
    "classify_exception",
    "classify_status",
    "wrap_exception",
]
