"""Messages backend helpers: image preparation and block translation.

Image preparation runs before encoding:

1. images above the backend's target budget go through
   :meth:`ImageCompressionEngine.compress_for_target`;
2. images still above the hard per-image limit, or that cannot be decoded,
   are dropped and logged (``image.dropped``) so the rest of the request
   still goes out;
3. the true format is sniffed from magic bytes; formats the backend does not
   accept are re-encoded as JPEG.

A request left with no text and no images fails with ``PAYLOAD_TOO_LARGE``.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..base.errors import AdapterError, CompressionFailed, ErrorKind
from ..base.logging import LogContext, normalized_log_event
from ..base.models import ImagePart, Message, Part, Role, TextPart
from ..base.utils.messages import extract_system
from ..config.defaults import (
    ANTHROPIC_DEFAULT_MODEL,
    ANTHROPIC_MAX_IMAGE_BYTES,
    ANTHROPIC_MAX_TOKENS_CAP,
    ANTHROPIC_MODEL_CATALOGUE,
    ANTHROPIC_TEMPERATURE,
)
from ..images.compression import FOR_TARGET_BYTES, ImageCompressionEngine, transcode_to_jpeg
from ..images.formats import JPEG, WIRE_FORMATS, detect_image_mime, to_base64

PROVIDER = "anthropic"
VERIFY_MAX_TOKENS = 10


def max_tokens_for(model: str) -> int:
    entry = ANTHROPIC_MODEL_CATALOGUE.get(model) or ANTHROPIC_MODEL_CATALOGUE[ANTHROPIC_DEFAULT_MODEL]
    return min(ANTHROPIC_MAX_TOKENS_CAP, entry["max_tokens"])


def list_catalogue_models() -> List[Dict[str, Any]]:
    return [{"id": model_id, **info} for model_id, info in ANTHROPIC_MODEL_CATALOGUE.items()]


def _drop(logger: logging.Logger, ctx: LogContext, image: ImagePart, reason: str, size: int) -> None:
    normalized_log_event(
        logger,
        "image.dropped",
        ctx,
        phase="prepare",
        error_code=ErrorKind.PAYLOAD_TOO_LARGE.value,
        emitted=False,
        reason=reason,
        input_bytes=image.size,
        output_bytes=size,
        level=logging.WARNING,
    )


def prepare_image(
    image: ImagePart,
    *,
    engine: ImageCompressionEngine,
    max_bytes: int,
    logger: logging.Logger,
    ctx: LogContext,
) -> Optional[ImagePart]:
    """Return a backend-safe copy of ``image`` or ``None`` when it must be dropped."""
    data, mime = image.data, image.mime_type
    try:
        if len(data) > min(FOR_TARGET_BYTES, max_bytes):
            result = engine.compress_for_target(data, mime, target_bytes=min(FOR_TARGET_BYTES, max_bytes))
            data, mime = result.data, result.mime_type
        detected = detect_image_mime(data)
        if detected is not None and detected not in WIRE_FORMATS:
            data, detected = transcode_to_jpeg(data), JPEG
    except CompressionFailed as exc:
        _drop(logger, ctx, image, f"undecodable: {exc.reason}", len(data))
        return None
    if len(data) > max_bytes:
        _drop(logger, ctx, image, "over_limit_after_compression", len(data))
        return None
    return ImagePart(data, detected or "image/png")


def prepare_messages(
    messages: Sequence[Message],
    *,
    engine: ImageCompressionEngine,
    max_bytes: Optional[int],
    logger: logging.Logger,
    ctx: LogContext,
) -> List[Message]:
    """Return new messages with images compressed, coerced or dropped."""
    limit = max_bytes or ANTHROPIC_MAX_IMAGE_BYTES
    prepared: List[Message] = []
    for m in messages:
        parts: List[Part] = []
        for p in m.parts:
            if isinstance(p, ImagePart):
                kept = prepare_image(p, engine=engine, max_bytes=limit, logger=logger, ctx=ctx)
                if kept is not None:
                    parts.append(kept)
            else:
                parts.append(p)
        prepared.append(m.with_parts(parts))
    has_content = any(
        isinstance(p, ImagePart) or not p.is_blank() for m in prepared if m.role is not Role.SYSTEM for p in m.parts
    )
    if not has_content:
        raise AdapterError(
            ErrorKind.PAYLOAD_TOO_LARGE,
            "no content left after dropping oversized images",
            PROVIDER,
            ctx.model,
        )
    return prepared


def content_blocks(message: Message) -> List[Dict[str, Any]]:
    blocks: List[Dict[str, Any]] = []
    for p in message.parts:
        if isinstance(p, TextPart):
            if not p.is_blank():
                blocks.append({"type": "text", "text": p.text})
        else:
            blocks.append(
                {"type": "image", "source": {"type": "base64", "media_type": p.mime_type, "data": to_base64(p.data)}}
            )
    return blocks


def build_params(messages: Sequence[Message], *, model: str) -> Dict[str, Any]:
    """Build ``messages.create`` keyword arguments from prepared messages."""
    system_text, turns = extract_system(messages)
    wire: List[Dict[str, Any]] = []
    for m in turns:
        blocks = content_blocks(m)
        if blocks:
            role = "assistant" if m.role is Role.ASSISTANT else "user"
            wire.append({"role": role, "content": blocks})
    params: Dict[str, Any] = {
        "model": model,
        "messages": wire,
        "max_tokens": max_tokens_for(model),
        "temperature": ANTHROPIC_TEMPERATURE,
    }
    if system_text:
        params["system"] = system_text
    return params


def parse_params(params: Dict[str, Any]) -> List[Message]:
    out: List[Message] = []
    if params.get("system"):
        out.append(Message.system(params["system"]))
    for item in params.get("messages", []):
        content = item.get("content")
        blocks = content if isinstance(content, list) else [{"type": "text", "text": content or ""}]
        parts: List[Part] = []
        for block in blocks:
            if block.get("type") == "text":
                parts.append(TextPart(block.get("text", "")))
            elif block.get("type") == "image":
                source = block.get("source", {})
                parts.append(ImagePart(base64.b64decode(source.get("data", "")), source.get("media_type", "image/png")))
        out.append(Message(Role.ASSISTANT if item.get("role") == "assistant" else Role.USER, tuple(parts)))
    return out


def response_text(response: Any, *, model: str) -> str:
    """Join the text blocks of a ``messages.create`` response."""
    blocks = getattr(response, "content", None)
    if not isinstance(blocks, (list, tuple)):
        raise AdapterError(ErrorKind.MALFORMED, "response has no content blocks", PROVIDER, model)
    texts = [getattr(b, "text", "") for b in blocks if getattr(b, "type", None) == "text"]
    if not texts:
        raise AdapterError(ErrorKind.MALFORMED, "response has no text blocks", PROVIDER, model)
    return "".join(texts)


def event_text(event: Any) -> Optional[str]:
    """Text of a ``content_block_delta`` event with a text delta; ``None`` for everything else."""
    if getattr(event, "type", None) != "content_block_delta":
        return None
    delta = getattr(event, "delta", None)
    text = getattr(delta, "text", None)
    return text if isinstance(text, str) and text else None


def usage_tokens(response: Any) -> Optional[Dict[str, Any]]:
    usage = getattr(response, "usage", None)
    if usage is None:
        return None
    prompt = getattr(usage, "input_tokens", None)
    completion = getattr(usage, "output_tokens", None)
    total: Optional[int] = None
    if isinstance(prompt, int) and isinstance(completion, int):
        total = prompt + completion
    return {"prompt": prompt, "completion": completion, "total": total}


__all__ = [
    "PROVIDER",
    "VERIFY_MAX_TOKENS",
    "max_tokens_for",
    "list_catalogue_models",
    "prepare_image",
    "prepare_messages",
    "content_blocks",
    "build_params",
    "parse_params",
    "response_text",
    "event_text",
    "usage_tokens",
]
