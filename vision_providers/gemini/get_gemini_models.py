"""Generative backend: list the models that can answer vision requests.

Behavior
- Fetches listings through ``genai.list_models()`` with the caller's key.
- Keeps models that support ``generateContent`` and accept image input;
  embedding, attributed-QA, speech and image-generation models are skipped.
- SDK failures are classified and raised as ``AdapterError``; there is no
  cached fallback.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

try:
    import google.generativeai as genai  # type: ignore
except Exception:  # pragma: no cover
    genai = None  # type: ignore

from ..base.constants import MISSING_API_KEY_ERROR
from ..base.errors import AdapterError, ErrorKind, wrap_exception
from ..base.logging import LogContext, get_logger, log_event
from ..config.defaults import GEMINI_MODEL_NAME_HINT, GEMINI_NON_VISION_HINTS
from .client import _CONFIGURE_LOCK

PROVIDER = "gemini"

ModelLister = Callable[[str], Iterable[Any]]

_logger = get_logger("providers.gemini.models")


@dataclass(frozen=True)
class GenerativeModelInfo:
    """One vision-capable entry from the model listing."""

    id: str
    name: str
    display_name: Optional[str] = None
    input_token_limit: Optional[int] = None
    output_token_limit: Optional[int] = None


def _list_via_sdk(api_key: str) -> List[Any]:
    if genai is None:  # pragma: no cover - depends on install
        raise RuntimeError("google-generativeai SDK not installed")
    with _CONFIGURE_LOCK:
        genai.configure(api_key=api_key)
        return list(genai.list_models())


def supports_vision(item: Any) -> bool:
    """True for ``generateContent`` models in the multimodal family."""
    name = str(getattr(item, "name", "") or "").lower()
    methods = getattr(item, "supported_generation_methods", None) or ()
    if "generateContent" not in methods:
        return False
    if GEMINI_MODEL_NAME_HINT not in name:
        return False
    return not any(hint in name for hint in GEMINI_NON_VISION_HINTS)


def _to_info(item: Any) -> GenerativeModelInfo:
    name = str(item.name)
    limit_in = getattr(item, "input_token_limit", None)
    limit_out = getattr(item, "output_token_limit", None)
    return GenerativeModelInfo(
        id=name.removeprefix("models/"),
        name=name,
        display_name=getattr(item, "display_name", None),
        input_token_limit=limit_in if isinstance(limit_in, int) else None,
        output_token_limit=limit_out if isinstance(limit_out, int) else None,
    )


def list_generative_models(api_key: Optional[str], lister: Optional[ModelLister] = None) -> List[GenerativeModelInfo]:
    """Return the vision-capable models visible to ``api_key``.

    Raises
    ------
    AdapterError
        ``UNAUTHORIZED`` without a key; otherwise the classified SDK failure.
    """
    if not api_key:
        raise AdapterError(ErrorKind.UNAUTHORIZED, MISSING_API_KEY_ERROR, PROVIDER)
    fetch = lister or _list_via_sdk
    try:
        items = list(fetch(api_key))
    except Exception as exc:
        raise wrap_exception(exc, PROVIDER) from exc
    models = [_to_info(item) for item in items if supports_vision(item)]
    log_event(_logger, "models.list", LogContext(provider=PROVIDER), count=len(models), listed=len(items))
    return models


__all__ = ["GenerativeModelInfo", "list_generative_models", "supports_vision"]
