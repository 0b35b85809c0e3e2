"""Fixed timeout values for backend calls.

Timeouts are adapter-specific and intentionally not caller-tunable: model
listing and verification must answer quickly, local inference is slow and
gets minutes, hosted backends sit in between.

Key Components
--------------
TimeoutConfig
    Frozen dataclass holding the values in seconds.

get_timeout_config()
    Returns the process-wide instance.

httpx_timeout(seconds)
    Builds an ``httpx.Timeout`` with a short connect phase and ``seconds`` for
    reads, which is what slow local generation needs.
"""
from __future__ import annotations

from dataclasses import dataclass

import httpx


@dataclass(frozen=True)
class TimeoutConfig:
    """Container for normalized timeout values (seconds).

    Attributes:
        verification_seconds: Model listing, ``/api/show`` and version checks.
        local_chat_seconds: Local ``chat`` endpoint calls.
        local_generate_seconds: Local ``generate`` endpoint calls.
        hosted_seconds: Hosted backends (completions, generative, messages).
        connect_seconds: TCP connect phase for every HTTP call.
    """

    verification_seconds: float = 5.0
    local_chat_seconds: float = 120.0
    local_generate_seconds: float = 180.0
    hosted_seconds: float = 120.0
    connect_seconds: float = 10.0


_CONFIG = TimeoutConfig()


def get_timeout_config() -> TimeoutConfig:
    """Return the shared timeout configuration."""
    return _CONFIG


def httpx_timeout(seconds: float) -> httpx.Timeout:
    cfg = get_timeout_config()
    return httpx.Timeout(seconds, connect=min(cfg.connect_seconds, seconds))


__all__ = ["TimeoutConfig", "get_timeout_config", "httpx_timeout"]
