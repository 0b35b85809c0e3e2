"""CLI action handlers.

Handlers build provider-neutral messages, run them through a :class:`Gateway`
and print the result. Failures are printed as one JSON line on stderr with
exit code ``1``; nothing here swallows an error silently.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

from ...anthropic import list_catalogue_models, verify_messages_config
from ...base.errors import AdapterError
from ...base.factory import UnknownProviderError
from ...base.logging import LogContext, get_logger, normalized_log_event
from ...base.models import ImagePart, Message, ProviderConfig, ProviderKind
from ...base.streaming import StreamChunk, StreamComplete, StreamError, StreamingCoordinator
from ...config import load_provider_config, normalize_local_base_url
from ...config.defaults import OLLAMA_DEFAULT_HOST
from ...gemini.get_gemini_models import list_generative_models
from ...gateway import Gateway
from ...images.formats import detect_image_mime
from ...ollama.get_ollama_models import list_local_models, verify_local_model


def _error_line(payload: Dict[str, Any], stream: TextIO) -> None:
    print(json.dumps(payload), file=stream)


def error_payload(exc: AdapterError) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "error": exc.detail,
        "kind": exc.kind.value,
        "provider": exc.provider,
        "model": exc.model,
    }
    if exc.available_models:
        payload["available_models"] = list(exc.available_models)
    return payload


def load_image(path: str) -> ImagePart:
    """Read ``path`` and sniff its type from the leading bytes."""
    data = Path(path).expanduser().read_bytes()
    return ImagePart(data, detect_image_mime(data) or "image/png")


def build_messages(prompt: str, image_paths: List[str], system: Optional[str] = None) -> List[Message]:
    messages: List[Message] = []
    if system:
        messages.append(Message.system(system))
    messages.append(Message.user(prompt, *(load_image(p) for p in image_paths)))
    return messages


def build_config(args: argparse.Namespace) -> ProviderConfig:
    overrides: Dict[str, Any] = {}
    if args.model:
        overrides["model"] = args.model
    if args.base_url:
        overrides["base_url"] = args.base_url
    return load_provider_config(args.provider, **overrides)


def _print_stream(coordinator: StreamingCoordinator, out: TextIO) -> int:
    chunks = 0
    for event in coordinator:
        if isinstance(event, StreamChunk):
            chunks += 1
            out.write(event.text)
            out.flush()
        elif isinstance(event, StreamComplete):
            if not chunks:
                out.write(event.full_text)
            out.write("\n")
        elif isinstance(event, StreamError):
            out.write("\n")
            _error_line({**error_payload(event.cause), "partial_text": event.partial_text}, sys.stderr)
            return 1
    return 0


def handle_analyze(
    args: argparse.Namespace, *, gateway: Optional[Gateway] = None, out: Optional[TextIO] = None
) -> int:
    """Execute the ``analyze`` subcommand.

    Returns
    -------
    int
        ``0`` on success, ``1`` on an adapter failure, ``2`` on invalid input.
    """
    out = out or sys.stdout
    logger = get_logger("providers.cli")
    try:
        config = build_config(args)
        messages = build_messages(args.prompt, args.images, args.system)
    except (UnknownProviderError, ValueError, OSError) as exc:
        _error_line({"error": str(exc)}, sys.stderr)
        return 2

    ctx = LogContext.new(config.provider_id, config.model)
    normalized_log_event(logger, "cli.start", ctx, phase="start", emitted=None, images=len(args.images))
    owned = gateway is None
    gw = gateway or Gateway()
    try:
        result = gw.send(messages, config, streaming=args.stream)
        if isinstance(result, StreamingCoordinator):
            with result:
                return _print_stream(result, out)
        print(result, file=out)
        return 0
    except AdapterError as exc:
        _error_line(error_payload(exc), sys.stderr)
        return 1
    finally:
        if owned:
            gw.close()


def _print_models(rows: List[Dict[str, Any]], labels: List[str], as_json: bool, out: TextIO) -> None:
    if as_json:
        print(json.dumps(rows), file=out)
        return
    for label in labels:
        print(label, file=out)


def _local_models(args: argparse.Namespace, out: TextIO) -> int:
    base_url = normalize_local_base_url(args.base_url or OLLAMA_DEFAULT_HOST)
    if args.verify:
        verification = verify_local_model(base_url, args.verify)
        print(json.dumps(asdict(verification)), file=out)
        return 0 if verification.exists else 1
    models = list_local_models(base_url)
    labels = [f"{m.name} (vision)" if m.is_multimodal else m.name for m in models]
    _print_models([asdict(m) for m in models], labels, args.json, out)
    return 0


def _generative_models(args: argparse.Namespace, out: TextIO) -> int:
    config = load_provider_config(ProviderKind.GENERATIVE.value)
    models = list_generative_models(config.api_key)
    if args.verify:
        exists = any(args.verify in (m.id, m.name) for m in models)
        print(json.dumps({"model": args.verify, "exists": exists, "available_models": [m.id for m in models]}), file=out)
        return 0 if exists else 1
    _print_models([asdict(m) for m in models], [m.id for m in models], args.json, out)
    return 0


def _messages_models(args: argparse.Namespace, out: TextIO) -> int:
    if args.verify:
        overrides: Dict[str, Any] = {"model": args.verify}
        if args.base_url:
            overrides["base_url"] = args.base_url
        ok = verify_messages_config(load_provider_config(ProviderKind.MESSAGES.value, **overrides))
        print(json.dumps({"model": args.verify, "exists": ok}), file=out)
        return 0 if ok else 1
    models = list_catalogue_models()
    _print_models(models, [m["id"] for m in models], args.json, out)
    return 0


_MODEL_HANDLERS = {
    ProviderKind.LOCAL: _local_models,
    ProviderKind.GENERATIVE: _generative_models,
    ProviderKind.MESSAGES: _messages_models,
}


def handle_models(args: argparse.Namespace, *, out: Optional[TextIO] = None) -> int:
    """Execute the ``models`` subcommand for the chosen backend.

    Returns
    -------
    int
        ``0`` on success, ``1`` on an adapter failure or a failed
        verification, ``2`` for a backend without model listing.
    """
    out = out or sys.stdout
    try:
        handler = _MODEL_HANDLERS.get(ProviderKind.parse(args.provider))
    except ValueError as exc:
        _error_line({"error": str(exc)}, sys.stderr)
        return 2
    if handler is None:
        _error_line({"error": f"model listing is not available for {args.provider}"}, sys.stderr)
        return 2
    try:
        return handler(args, out)
    except AdapterError as exc:
        _error_line(error_payload(exc), sys.stderr)
        return 1


__all__ = ["handle_analyze", "handle_models", "build_messages", "error_payload", "load_image"]
