"""
Gateway base package.

Exports the provider-neutral DTOs, the error taxonomy and logging helpers.
The adapter factory lives in ``vision_providers.base.factory`` and is imported
explicitly by callers that need it.
"""

from .errors import AdapterError, CompressionFailed, ErrorKind, StreamStateError, classify_exception
from .models import CompressionTarget, ImagePart, Message, ProviderConfig, ProviderKind, Role, TextPart
from .timeouts import TimeoutConfig, get_timeout_config

__all__ = [
    # Models
    "Role",
    "TextPart",
    "ImagePart",
    "Message",
    "ProviderKind",
    "ProviderConfig",
    "CompressionTarget",
    # Errors
    "ErrorKind",
    "AdapterError",
    "CompressionFailed",
    "StreamStateError",
    "classify_exception",
    # Timeouts
    "TimeoutConfig",
    "get_timeout_config",
]
