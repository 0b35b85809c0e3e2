"""Errors parts package public surface.

Re-exports individual error taxonomy components for optional direct imports.
Prefer importing from `vision_providers.base.errors` for the stable surface.
"""

from .error_kind import ErrorKind
from .adapter_error import AdapterError
from .compression_failed import CompressionFailed
from .stream_state_error import StreamStateError
from .classification import classify_exception, classify_status, wrap_exception

__all__ = [
    "ErrorKind",
    "AdapterError",
    "CompressionFailed",
    "StreamStateError",
    "classify_exception",
    "classify_status",
    "wrap_exception",
]
