"""Local model discovery and verification.

Purpose
    List the models installed on the local server, inspect one model's
    families, check the server version, and verify that a requested model
    exists (suggesting vision-capable alternatives when it does not).

External Dependencies
    * Local HTTP API: ``GET /api/tags``, ``POST /api/show``, ``GET /api/version``.

Timeout Strategy
    Every call uses the short ``verification_seconds`` timeout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..base.errors import AdapterError, ErrorKind
from ..base.http import HttpClientRegistry, raise_for_status
from ..base.logging import LogContext, get_logger, log_event
from ..base.timeouts import get_timeout_config, httpx_timeout
from ..config import normalize_local_base_url
from ..config.defaults import OLLAMA_MAX_SUGGESTIONS, OLLAMA_VISION_FAMILIES, OLLAMA_VISION_HINTS

PROVIDER = "ollama"

_logger = get_logger("providers.ollama.models")


@dataclass(frozen=True)
class LocalModelInfo:
    """One entry from ``/api/tags``."""

    name: str
    size: Optional[int] = None
    family: Optional[str] = None
    families: Tuple[str, ...] = ()
    parameter_size: Optional[str] = None

    @property
    def is_multimodal(self) -> bool:
        names = {self.family or "", *self.families}
        return any(f in OLLAMA_VISION_FAMILIES for f in names) or _looks_like_vision(self.name)


@dataclass(frozen=True)
class ModelVerification:
    """Result of :func:`verify_local_model`."""

    exists: bool
    is_multimodal: bool = False
    available_models: Tuple[str, ...] = ()
    suggested_models: Tuple[str, ...] = ()
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


def _looks_like_vision(name: str) -> bool:
    lowered = name.lower()
    return any(hint in lowered for hint in OLLAMA_VISION_HINTS)


def _get_json(http: HttpClientRegistry, base_url: str, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
    client = http.get(base_url, purpose="ollama.models")
    try:
        resp = client.request(method, path, timeout=httpx_timeout(get_timeout_config().verification_seconds), **kwargs)
    except httpx.TransportError as exc:
        raise AdapterError(
            ErrorKind.NETWORK,
            f"Unable to connect to the local model server at {base_url}: {exc}",
            PROVIDER,
            raw=exc,
        ) from exc
    raise_for_status(resp, provider=PROVIDER, model=kwargs.get("json", {}).get("model"))
    try:
        data = resp.json()
    except ValueError as exc:
        raise AdapterError(ErrorKind.MALFORMED, f"invalid JSON from {path}", PROVIDER, raw=exc) from exc
    if not isinstance(data, dict):
        raise AdapterError(ErrorKind.MALFORMED, f"unexpected response shape from {path}", PROVIDER)
    return data


def _parse_model(item: Dict[str, Any]) -> Optional[LocalModelInfo]:
    name = item.get("name") or item.get("model")
    if not isinstance(name, str) or not name:
        return None
    details = item.get("details") if isinstance(item.get("details"), dict) else {}
    size = item.get("size")
    return LocalModelInfo(
        name=name,
        size=size if isinstance(size, int) else None,
        family=details.get("family"),
        families=tuple(details.get("families") or ()),
        parameter_size=details.get("parameter_size"),
    )


def list_local_models(base_url: str, http: Optional[HttpClientRegistry] = None) -> List[LocalModelInfo]:
    """Return the models installed on the local server."""
    url = normalize_local_base_url(base_url)
    registry = http or HttpClientRegistry()
    try:
        data = _get_json(registry, url, "GET", "/api/tags")
    finally:
        if http is None:
            registry.close()
    models = [m for m in (_parse_model(i) for i in data.get("models") or () if isinstance(i, dict)) if m]
    log_event(_logger, "models.list", LogContext(provider=PROVIDER), base_url=url, count=len(models))
    return models


def show_local_model(base_url: str, model: str, http: Optional[HttpClientRegistry] = None) -> Dict[str, Any]:
    """Return ``/api/show`` details for ``model``."""
    url = normalize_local_base_url(base_url)
    registry = http or HttpClientRegistry()
    try:
        return _get_json(registry, url, "POST", "/api/show", json={"model": model})
    finally:
        if http is None:
            registry.close()


def check_local_server(base_url: str, http: Optional[HttpClientRegistry] = None) -> str:
    """Return the server version string; raises ``AdapterError`` when unreachable."""
    url = normalize_local_base_url(base_url)
    registry = http or HttpClientRegistry()
    try:
        data = _get_json(registry, url, "GET", "/api/version")
    finally:
        if http is None:
            registry.close()
    return str(data.get("version", ""))


def _same_model(requested: str, installed: str) -> bool:
    if requested == installed:
        return True
    if ":" not in requested:
        return installed == f"{requested}:latest"
    return False


def verify_local_model(base_url: str, model: str, http: Optional[HttpClientRegistry] = None) -> ModelVerification:
    """Check that ``model`` is installed; never raises.

    Connection and protocol failures are reported through ``error``.
    """
    try:
        models = list_local_models(base_url, http)
    except AdapterError as exc:
        return ModelVerification(exists=False, error=exc.detail)
    names = tuple(m.name for m in models)
    match = next((m for m in models if _same_model(model, m.name)), None)
    suggested = tuple(n for n in names if _looks_like_vision(n))[:OLLAMA_MAX_SUGGESTIONS]
    verification = ModelVerification(
        exists=match is not None,
        is_multimodal=bool(match and match.is_multimodal),
        available_models=names,
        suggested_models=suggested,
        error=None if match else f"Model '{model}' is not installed",
        details={"family": match.family, "parameter_size": match.parameter_size} if match else {},
    )
    log_event(
        _logger,
        "models.verify",
        LogContext(provider=PROVIDER, model=model),
        exists=verification.exists,
        is_multimodal=verification.is_multimodal,
        available=len(names),
    )
    return verification


__all__ = [
    "LocalModelInfo",
    "ModelVerification",
    "list_local_models",
    "show_local_model",
    "check_local_server",
    "verify_local_model",
]
