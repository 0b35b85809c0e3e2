"""
Provider-agnostic interfaces for the adapter layer.

Re-exports the single-class modules under
``vision_providers.base.interfaces_parts`` to keep imports stable.
"""

from __future__ import annotations

from .interfaces_parts import SendResult, VisionAdapter

__all__ = ["VisionAdapter", "SendResult"]
