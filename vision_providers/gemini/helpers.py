"""Generative backend helpers.

The backend does not model multi-turn role history for vision requests, so
every turn is flattened into a single ``user`` content entry. Blank text parts
are dropped; an otherwise empty request carries a placeholder text part.
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..base.constants import EMPTY_INPUT_PLACEHOLDER
from ..base.errors import AdapterError, CompressionFailed, ErrorKind
from ..base.models import ImagePart, Message, Part, Role, TextPart
from ..config.defaults import GEMINI_GENERATION_CONFIG, GEMINI_SAFETY_CATEGORIES, GEMINI_SAFETY_THRESHOLD
from ..images.compression import wire_image
from ..images.formats import to_base64

PROVIDER = "gemini"


def flatten_parts(messages: Sequence[Message]) -> List[Part]:
    """All non-blank parts in order; the placeholder when nothing remains."""
    parts: List[Part] = [
        p for m in messages for p in m.parts if not (isinstance(p, TextPart) and p.is_blank())
    ]
    return parts or [TextPart(EMPTY_INPUT_PLACEHOLDER)]


def wire_part(part: ImagePart) -> Tuple[bytes, str]:
    try:
        return wire_image(part.data, part.mime_type)
    except CompressionFailed as exc:
        raise AdapterError(ErrorKind.MALFORMED, f"unreadable image: {exc.reason}", PROVIDER, raw=exc) from exc


def generation_config() -> Dict[str, Any]:
    return dict(GEMINI_GENERATION_CONFIG)


def safety_settings() -> List[Dict[str, str]]:
    """Fixed permissive thresholds for every harm category."""
    return [{"category": c, "threshold": GEMINI_SAFETY_THRESHOLD} for c in GEMINI_SAFETY_CATEGORIES]


def build_request_body(messages: Sequence[Message]) -> Dict[str, Any]:
    """REST-shaped request body with base64 image data."""
    wire_parts: List[Dict[str, Any]] = []
    for p in flatten_parts(messages):
        if isinstance(p, TextPart):
            wire_parts.append({"text": p.text})
        else:
            data, mime = wire_part(p)
            wire_parts.append({"inlineData": {"mimeType": mime, "data": to_base64(data)}})
    cfg = generation_config()
    return {
        "contents": [{"role": "user", "parts": wire_parts}],
        "generationConfig": {
            "temperature": cfg["temperature"],
            "topP": cfg["top_p"],
            "topK": cfg["top_k"],
            "maxOutputTokens": cfg["max_output_tokens"],
        },
        "safetySettings": safety_settings(),
    }


def sdk_contents(messages: Sequence[Message]) -> List[Dict[str, Any]]:
    """SDK-shaped contents; image data stays raw bytes for the client library."""
    sdk_parts: List[Dict[str, Any]] = []
    for p in flatten_parts(messages):
        if isinstance(p, TextPart):
            sdk_parts.append({"text": p.text})
        else:
            data, mime = wire_part(p)
            sdk_parts.append({"inline_data": {"mime_type": mime, "data": data}})
    return [{"role": "user", "parts": sdk_parts}]


def parse_contents(body: Any) -> List[Message]:
    contents = body.get("contents", []) if isinstance(body, dict) else body
    out: List[Message] = []
    for entry in contents:
        parts: List[Part] = []
        for item in entry.get("parts", []):
            if "text" in item:
                parts.append(TextPart(item["text"]))
                continue
            blob = item.get("inlineData") or item.get("inline_data") or {}
            data = blob.get("data", b"")
            if isinstance(data, str):
                try:
                    data = base64.b64decode(data, validate=True)
                except binascii.Error as exc:
                    raise AdapterError(ErrorKind.MALFORMED, "invalid base64 image", PROVIDER, raw=exc) from exc
            parts.append(ImagePart(data, blob.get("mimeType") or blob.get("mime_type") or "image/png"))
        role = Role.ASSISTANT if entry.get("role") == "model" else Role.USER
        out.append(Message(role, tuple(parts)))
    return out


def response_text(response: Any, *, model: str) -> str:
    """Return the response text; blocked or empty candidates are ``MALFORMED``."""
    try:
        text = response.text
    except (ValueError, AttributeError, IndexError) as exc:
        raise AdapterError(ErrorKind.MALFORMED, f"response has no text: {exc}", PROVIDER, model, raw=exc) from exc
    if not isinstance(text, str):
        raise AdapterError(ErrorKind.MALFORMED, "response has no text", PROVIDER, model)
    return text


_BLOCKING_FINISH_REASONS = frozenset({"SAFETY", "RECITATION", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII", "OTHER"})


def _block_reason(chunk: Any) -> Optional[str]:
    feedback = getattr(chunk, "prompt_feedback", None)
    blocked = getattr(feedback, "block_reason", None)
    if blocked:
        return str(getattr(blocked, "name", blocked))
    for candidate in getattr(chunk, "candidates", None) or ():
        reason = getattr(candidate, "finish_reason", None)
        name = str(getattr(reason, "name", reason or ""))
        if name in _BLOCKING_FINISH_REASONS:
            return name
    return None


def chunk_text(chunk: Any, *, model: str) -> str:
    """Text of one streamed chunk.

    A chunk whose ``parts`` is explicitly empty and carries no block reason
    (usage-only tail chunks) yields ``""``. Blocked chunks, or chunks whose
    ``text`` accessor raises, are ``MALFORMED`` so the stream fails instead of
    completing with truncated text.
    """
    reason = _block_reason(chunk)
    if reason is not None:
        raise AdapterError(ErrorKind.MALFORMED, f"stream blocked: {reason}", PROVIDER, model)
    parts = getattr(chunk, "parts", None)
    if parts is not None and not parts:
        return ""
    try:
        text = chunk.text
    except (ValueError, AttributeError, IndexError) as exc:
        raise AdapterError(ErrorKind.MALFORMED, f"stream chunk has no text: {exc}", PROVIDER, model, raw=exc) from exc
    if not isinstance(text, str):
        raise AdapterError(ErrorKind.MALFORMED, "stream chunk has no text", PROVIDER, model)
    return text


__all__ = [
    "PROVIDER",
    "flatten_parts",
    "generation_config",
    "safety_settings",
    "build_request_body",
    "sdk_contents",
    "parse_contents",
    "response_text",
    "chunk_text",
]
