"""Conversation role enumeration shared by every message turn."""
from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Author of a conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


__all__ = ["Role"]
