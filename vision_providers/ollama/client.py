"""Local model server adapter.

Purpose:
    Implements single-shot and streamed vision requests against a local
    model-serving daemon (default ``http://127.0.0.1:11434``).

External dependencies:
    - ``httpx`` only. No SDK or API key.

Protocol selection:
    The server exposes ``generate`` and ``chat``. The protocol for a model is
    taken from, in order: the caller's ``local_protocols`` table, the families
    reported by ``/api/show`` (when ``discover_capabilities`` is set), and the
    model-name heuristic.

Fallback semantics (via :class:`FallbackChain`):
    - ``chat`` models: ``chat`` first; on a recoverable failure, ``generate``
      with a ``User: ...`` / ``Assistant: ...`` transcript and all images.
    - ``generate`` models: ``generate`` first; on a recoverable failure,
      ``chat`` with the flattened prompt as one user turn carrying the images.
    The original error is surfaced when both fail. Missing models are
    reported with the installed alternatives.

Timeouts:
    ``chat`` 120s, ``generate`` 180s, discovery 5s (see ``base.timeouts``).
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..base.errors import AdapterError, ErrorKind
from ..base.http import HttpClientRegistry
from ..base.interfaces import VisionAdapter
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import ImagePart, LocalProtocol, Message, ProviderConfig, ProviderKind, Role, TextPart
from ..base.resilience import FallbackAttempt, FallbackChain
from ..base.streaming import StreamingCoordinator
from ..base.utils.messages import build_transcript, collect_images, flatten_prompt
from .get_ollama_models import list_local_models, show_local_model
from .helpers import (
    CHAT_PATH,
    GENERATE_PATH,
    StreamOpen,
    build_chat_payload,
    build_generate_payload,
    chat_delta,
    chat_messages,
    extract_chat_text,
    extract_generate_text,
    generate_delta,
    open_stream,
    post_json,
    protocol_from_names,
    protocol_from_table,
    resolve_base_url,
    timeout_for,
)


class LocalModelAdapter(VisionAdapter):
    """Adapter for the local model server's ``generate`` and ``chat`` endpoints."""

    kind = ProviderKind.LOCAL

    def __init__(self, http: Optional[HttpClientRegistry] = None, logger: Optional[logging.Logger] = None) -> None:
        self._http = http or HttpClientRegistry()
        self._logger = logger or get_logger("providers.ollama")

    # ---- Protocol selection ----
    def resolve_protocol(self, config: ProviderConfig) -> LocalProtocol:
        """Pick ``chat`` or ``generate`` for ``config.model``."""
        model = config.model
        explicit = protocol_from_table(model, config.local_protocols)
        if explicit is not None:
            return explicit
        if config.discover_capabilities:
            try:
                details = show_local_model(resolve_base_url(config), model, self._http).get("details") or {}
            except AdapterError as exc:
                normalized_log_event(
                    self._logger,
                    "models.discover_failed",
                    LogContext(provider=self.provider_name, model=model),
                    phase="start",
                    error_code=exc.kind.value,
                    error=exc.detail,
                    level=logging.WARNING,
                )
            else:
                families = [details.get("family"), details.get("parent_model"), *(details.get("families") or ())]
                return protocol_from_names(model, *families)
        return protocol_from_names(model)

    # ---- Wire translation ----
    def messages_to_wire(self, messages: Sequence[Message], config: ProviderConfig) -> Dict[str, Any]:
        if self.resolve_protocol(config) == "generate":
            images = [img.data for img in collect_images(messages)]
            return build_generate_payload(model=config.model, prompt=flatten_prompt(messages), images=images, stream=False)
        return build_chat_payload(model=config.model, messages=chat_messages(messages), stream=False)

    def messages_from_wire(self, wire: Any) -> List[Message]:
        items = wire.get("messages", []) if isinstance(wire, dict) else wire
        out: List[Message] = []
        for item in items:
            parts: List[Any] = []
            if item.get("content"):
                parts.append(TextPart(item["content"]))
            for encoded in item.get("images") or ():
                try:
                    parts.append(ImagePart(base64.b64decode(encoded, validate=True)))
                except binascii.Error as exc:
                    raise AdapterError(ErrorKind.MALFORMED, "invalid base64 image", self.provider_name, raw=exc) from exc
            out.append(Message(Role(item.get("role", "user")), tuple(parts)))
        return out

    # ---- Attempts ----
    def _attempts(self, messages: Sequence[Message], config: ProviderConfig, *, stream: bool) -> List[FallbackAttempt]:
        base_url = resolve_base_url(config)
        model = config.model
        images = [img.data for img in collect_images(messages)]

        def chat(payload_messages: List[Dict[str, Any]]) -> Callable[[], Any]:
            payload = build_chat_payload(model=model, messages=payload_messages, stream=stream)
            timeout = timeout_for("chat")
            if stream:
                return lambda: self._open(base_url, CHAT_PATH, payload, timeout, model, chat_delta)
            return lambda: extract_chat_text(
                post_json(self._http, base_url, CHAT_PATH, payload, timeout=timeout, model=model), model=model
            )

        def generate(prompt: str) -> Callable[[], Any]:
            payload = build_generate_payload(model=model, prompt=prompt, images=images, stream=stream)
            timeout = timeout_for("generate")
            if stream:
                return lambda: self._open(base_url, GENERATE_PATH, payload, timeout, model, generate_delta)
            return lambda: extract_generate_text(
                post_json(self._http, base_url, GENERATE_PATH, payload, timeout=timeout, model=model), model=model
            )

        if self.resolve_protocol(config) == "generate":
            prompt = flatten_prompt(messages)
            single_turn = chat_messages([Message(Role.USER, (TextPart(prompt), *collect_images(messages)))])
            return [
                FallbackAttempt("generate", generate(prompt)),
                FallbackAttempt("chat-flattened", chat(single_turn)),
            ]
        return [
            FallbackAttempt("chat", chat(chat_messages(messages))),
            FallbackAttempt("generate-transcript", generate(build_transcript(messages))),
        ]

    def _open(self, base_url, path, payload, timeout, model, translator) -> StreamOpen:
        return open_stream(
            self._http,
            base_url,
            path,
            payload,
            timeout=timeout,
            model=model,
            translator=translator,
        )

    def _run_chain(self, messages: Sequence[Message], config: ProviderConfig, *, stream: bool, ctx: LogContext) -> Any:
        chain = FallbackChain(
            self._attempts(messages, config, stream=stream),
            provider=self.provider_name,
            model=config.model,
            logger=self._logger,
            ctx=ctx,
        )
        try:
            return chain.run()
        except AdapterError as exc:
            if exc.kind is ErrorKind.MODEL_UNAVAILABLE and not exc.available_models:
                exc.available_models = self._installed_models(config)
            normalized_log_event(
                self._logger,
                "chat.error",
                ctx,
                phase="finalize",
                error_code=exc.kind.value,
                emitted=False,
                error=exc.detail,
                tried=chain.tried,
                level=logging.ERROR,
            )
            raise

    def _installed_models(self, config: ProviderConfig) -> tuple:
        try:
            return tuple(m.name for m in list_local_models(resolve_base_url(config), self._http))
        except AdapterError:
            return ()

    # ---- Public API ----
    def complete(self, messages: Sequence[Message], config: ProviderConfig) -> str:
        ctx = LogContext.new(self.provider_name, config.model)
        normalized_log_event(self._logger, "chat.start", ctx, phase="start", emitted=None, turns=len(messages))
        text = self._run_chain(messages, config, stream=False, ctx=ctx)
        normalized_log_event(self._logger, "chat.end", ctx, phase="finalize", emitted=True, chars=len(text))
        return text

    def stream(self, messages: Sequence[Message], config: ProviderConfig) -> StreamingCoordinator:
        ctx = LogContext.new(self.provider_name, config.model)
        deltas, close = self._run_chain(messages, config, stream=True, ctx=ctx)
        return StreamingCoordinator(
            deltas, provider=self.provider_name, model=config.model, on_close=close, logger=self._logger, ctx=ctx
        )


__all__ = ["LocalModelAdapter"]
