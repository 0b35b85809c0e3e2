"""
Provider-agnostic domain models (DTOs) public surface.

This module re-exports the one-class-per-file implementations under
``vision_providers.base.models_parts`` so callers have a single import path.
"""

from .models_parts.role import Role
from .models_parts.parts import ImagePart, Part, TextPart
from .models_parts.message import Message
from .models_parts.provider_kind import ProviderKind
from .models_parts.provider_config import LocalProtocol, ProviderConfig
from .models_parts.compression_target import CompressionTarget

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
