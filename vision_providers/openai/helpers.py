"""Completions backend helpers: message shaping and response parsing.

Two request encodings are supported:

- primary: one message per turn, user content as an array of
  ``{"type": "text"}`` / ``{"type": "image_url"}`` items;
- split: every user part becomes its own user message, used when the backend
  rejects the multi-part shape.

Images are embedded as ``data:`` URIs.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from ..base.errors import AdapterError, CompressionFailed, ErrorKind
from ..base.models import ImagePart, Message, Part, Role, TextPart
from ..images.compression import wire_image
from ..images.formats import build_data_uri, parse_data_uri

PROVIDER = "openai"


def content_item(part: Part) -> Dict[str, Any]:
    if isinstance(part, TextPart):
        return {"type": "text", "text": part.text}
    try:
        data, mime = wire_image(part.data, part.mime_type)
    except CompressionFailed as exc:
        raise AdapterError(ErrorKind.MALFORMED, f"unreadable image: {exc.reason}", PROVIDER, raw=exc) from exc
    uri = build_data_uri(data, mime)
    return {"type": "image_url", "image_url": {"url": uri}}


def build_messages(messages: Sequence[Message]) -> List[Dict[str, Any]]:
    """Primary encoding: content arrays for user turns, strings otherwise."""
    out: List[Dict[str, Any]] = []
    for m in messages:
        if m.role is Role.USER:
            out.append({"role": m.role.value, "content": [content_item(p) for p in m.parts]})
        else:
            out.append({"role": m.role.value, "content": m.text_or_joined()})
    return out


def build_split_messages(messages: Sequence[Message]) -> List[Dict[str, Any]]:
    """Alternate encoding: one user message per part."""
    out: List[Dict[str, Any]] = []
    for m in messages:
        if m.role is not Role.USER:
            out.append({"role": m.role.value, "content": m.text_or_joined()})
            continue
        for p in m.parts:
            if isinstance(p, TextPart):
                out.append({"role": "user", "content": p.text})
            else:
                out.append({"role": "user", "content": [content_item(p)]})
    return out


def _part_from_item(item: Any) -> Optional[Part]:
    if isinstance(item, str):
        return TextPart(item)
    if not isinstance(item, dict):
        return None
    if item.get("type") == "text":
        return TextPart(item.get("text", ""))
    if item.get("type") == "image_url":
        data, mime = parse_data_uri(item.get("image_url", {}).get("url", ""))
        return ImagePart(data, mime)
    return None


def parse_messages(wire: Sequence[Dict[str, Any]]) -> List[Message]:
    out: List[Message] = []
    for msg in wire:
        content = msg.get("content")
        items = content if isinstance(content, list) else [content] if content else []
        parts = [p for p in (_part_from_item(i) for i in items) if p is not None]
        out.append(Message(Role(msg.get("role", "user")), tuple(parts)))
    return out


def extract_text(response: Any, *, model: str) -> str:
    """Return the first choice's text or raise ``MALFORMED``."""
    try:
        text = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError) as exc:
        raise AdapterError(ErrorKind.MALFORMED, "completion has no choices", PROVIDER, model, raw=exc) from exc
    if text is None:
        raise AdapterError(ErrorKind.MALFORMED, "completion choice has no text", PROVIDER, model)
    return text


def stream_delta(chunk: Any) -> Optional[str]:
    choices = getattr(chunk, "choices", None)
    if not choices:
        return None
    delta = getattr(choices[0], "delta", None)
    return getattr(delta, "content", None) if delta is not None else None


__all__ = [
    "PROVIDER",
    "content_item",
    "build_messages",
    "build_split_messages",
    "parse_messages",
    "extract_text",
    "stream_delta",
]
