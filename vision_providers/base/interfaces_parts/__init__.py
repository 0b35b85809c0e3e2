"""Interface parts: one abstract contract per module."""

from .vision_adapter import SendResult, VisionAdapter

__all__ = ["VisionAdapter", "SendResult"]
