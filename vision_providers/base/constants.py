"""Base shared constants for backend adapters.

Central location to avoid scattering magic strings.

# pragma: allowlist secret
"""
from __future__ import annotations

# Missing credential sentinel
MISSING_API_KEY_ERROR = "missing_api_key"  # pragma: allowlist secret - generic placeholder string, not a real secret

# Substituted when a generative request would otherwise carry no content
EMPTY_INPUT_PLACEHOLDER = "please provide a valid question or input"

# Local transcript markers
IMAGE_ONLY_TURN_MARKER = "[Image provided]"
TRANSCRIPT_ASSISTANT_CUE = "Assistant: "

__all__ = [
    "MISSING_API_KEY_ERROR",
    "EMPTY_INPUT_PLACEHOLDER",
    "IMAGE_ONLY_TURN_MARKER",
    "TRANSCRIPT_ASSISTANT_CUE",
]
