"""
Closed set of backend kinds the gateway can dispatch to.

Each kind maps to exactly one adapter in the factory lookup table. ``parse``
accepts the canonical value plus a few historical aliases used by settings
files; anything else is rejected instead of silently misrouted.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Union


class ProviderKind(str, Enum):
    """Backend families supported by the gateway."""

    COMPLETIONS = "openai"
    GENERATIVE = "gemini"
    LOCAL = "ollama"
    MESSAGES = "anthropic"

    @classmethod
    def parse(cls, value: Union[str, "ProviderKind"]) -> "ProviderKind":
        if isinstance(value, ProviderKind):
            return value
        key = (value or "").strip().lower()
        try:
            return cls(key)
        except ValueError:
            pass
        if key in _ALIASES:
            return _ALIASES[key]
        raise ValueError(f"unknown provider: {value!r}")


_ALIASES: Dict[str, ProviderKind] = {
    "completions": ProviderKind.COMPLETIONS,
    "google": ProviderKind.GENERATIVE,
    "generative": ProviderKind.GENERATIVE,
    "local": ProviderKind.LOCAL,
    "claude": ProviderKind.MESSAGES,
    "azure-foundry": ProviderKind.MESSAGES,
    "azure": ProviderKind.MESSAGES,
    "messages": ProviderKind.MESSAGES,
}


__all__ = ["ProviderKind"]
