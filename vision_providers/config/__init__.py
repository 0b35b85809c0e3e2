"""Layered provider configuration.

Merge order (later wins):
    1. Built-in defaults (``config.defaults``)
    2. Optional external file pointed to by ``PROVIDERS_CONFIG_FILE`` (JSON
       first; YAML when PyYAML is installed)
    3. Environment variables ``<PROVIDER>_MODEL``, ``<PROVIDER>_API_KEY``,
       ``<PROVIDER>_BASE_URL``, ``<PROVIDER>_MAX_IMAGE_BYTES``, plus the
       canonical credential names from ``config.env``
    4. In-code overrides

External file example::

    ollama:
      model: llava:13b
      base_url: http://localhost:11434
      local_protocols:
        deepseek-r1:8b: generate
    anthropic:
      model: claude-opus-4-1

Public API
----------
* get_provider_config(provider, overrides=None) -> dict
* load_provider_config(provider, **overrides) -> ProviderConfig
* normalize_local_base_url(url) -> str
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

from ..base.models import ProviderConfig, ProviderKind
from .defaults import (
    ANTHROPIC_DEFAULT_MODEL,
    ANTHROPIC_MAX_IMAGE_BYTES,
    GEMINI_DEFAULT_MODEL,
    GEMINI_MAX_IMAGE_BYTES,
    OLLAMA_DEFAULT_HOST,
    OLLAMA_DEFAULT_MODEL,
    OLLAMA_MAX_IMAGE_BYTES,
    OPENAI_DEFAULT_MODEL,
    OPENAI_MAX_IMAGE_BYTES,
)
from .env import is_placeholder, resolve_provider_key

try:  # Optional YAML support
    import yaml  # type: ignore
except Exception:  # pragma: no cover
    yaml = None  # type: ignore


DEFAULTS: Dict[str, Dict[str, Any]] = {
    "openai": {"model": OPENAI_DEFAULT_MODEL, "max_image_bytes": OPENAI_MAX_IMAGE_BYTES},
    "gemini": {"model": GEMINI_DEFAULT_MODEL, "max_image_bytes": GEMINI_MAX_IMAGE_BYTES},
    "anthropic": {"model": ANTHROPIC_DEFAULT_MODEL, "max_image_bytes": ANTHROPIC_MAX_IMAGE_BYTES},
    "ollama": {
        "model": OLLAMA_DEFAULT_MODEL,
        "base_url": OLLAMA_DEFAULT_HOST,
        "max_image_bytes": OLLAMA_MAX_IMAGE_BYTES,
    },
}

ENV_FIELD_MAP = {
    "model": "MODEL",
    "api_key": "API_KEY",  # pragma: allowlist secret - env suffix name, not a secret
    "base_url": "BASE_URL",
    "max_image_bytes": "MAX_IMAGE_BYTES",
}

_FILE_CACHE: Optional[Dict[str, Any]] = None
_FILE_CACHE_PATH: Optional[str] = None


def _load_external_config() -> Dict[str, Any]:
    global _FILE_CACHE, _FILE_CACHE_PATH
    path = os.getenv("PROVIDERS_CONFIG_FILE")
    if _FILE_CACHE is not None and path == _FILE_CACHE_PATH:
        return _FILE_CACHE
    _FILE_CACHE_PATH = path
    data: Any = {}
    if path and Path(path).is_file():
        text = Path(path).read_text(encoding="utf-8")
        try:
            data = json.loads(text)
        except ValueError:
            if yaml is not None:
                data = yaml.safe_load(text) or {}
    _FILE_CACHE = data if isinstance(data, dict) else {}
    return _FILE_CACHE


def _env_overrides(provider: str) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    prefix = provider.upper()
    for field, suffix in ENV_FIELD_MAP.items():
        val = os.getenv(f"{prefix}_{suffix}")
        if val is not None and not is_placeholder(val):
            out[field] = val
    if "api_key" not in out:
        key, _ = resolve_provider_key(provider)
        if key:
            out["api_key"] = key
    # OLLAMA_HOST is the daemon's own convention
    if provider == ProviderKind.LOCAL.value and "base_url" not in out and os.getenv("OLLAMA_HOST"):
        out["base_url"] = os.environ["OLLAMA_HOST"]
    return out


def normalize_local_base_url(url: str) -> str:
    """Force IPv4 loopback and an explicit scheme for the local server URL."""
    raw = url.strip()
    if "://" not in raw:
        raw = f"http://{raw}"
    parts = urlsplit(raw)
    host = parts.hostname or "127.0.0.1"
    if host == "localhost":
        host = "127.0.0.1"
    netloc = f"{host}:{parts.port}" if parts.port else host
    return urlunsplit((parts.scheme, netloc, parts.path.rstrip("/"), "", ""))


def get_provider_config(provider: str, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return the merged configuration mapping for ``provider``."""
    name = ProviderKind.parse(provider).value
    cfg: Dict[str, Any] = dict(DEFAULTS.get(name, {}))
    file_cfg = _load_external_config().get(name)
    if isinstance(file_cfg, dict):
        cfg |= file_cfg
    cfg |= _env_overrides(name)
    if overrides:
        cfg |= {k: v for k, v in overrides.items() if v is not None}
    if name == ProviderKind.LOCAL.value and cfg.get("base_url"):
        cfg["base_url"] = normalize_local_base_url(str(cfg["base_url"]))
    return cfg


def load_provider_config(provider: str, **overrides: Any) -> ProviderConfig:
    """Build the frozen :class:`ProviderConfig` snapshot for one call."""
    cfg = get_provider_config(provider, overrides)
    cfg["provider"] = provider
    known = set(ProviderConfig.model_fields)
    return ProviderConfig(**{k: v for k, v in cfg.items() if k in known})


__all__ = [
    "DEFAULTS",
    "get_provider_config",
    "load_provider_config",
    "normalize_local_base_url",
]
