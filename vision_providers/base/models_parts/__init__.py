"""Models parts package public surface.

Prefer importing from `vision_providers.base.models` for the stable surface.
"""

from .role import Role
from .parts import ImagePart, Part, TextPart
from .message import Message
from .provider_kind import ProviderKind
from .provider_config import LocalProtocol, ProviderConfig
from .compression_target import CompressionTarget

__all__ = [
    "Role",
    "TextPart",
    "ImagePart",
    "Part",
    "Message",
    "ProviderKind",
    "ProviderConfig",
    "LocalProtocol",
    "CompressionTarget",
]
