"""Completions backend adapter built on the ``openai`` SDK.

Uses ``OpenAI().chat.completions.create`` for both single-shot and streamed
calls. A missing credential fails with ``UNAUTHORIZED`` before any request.

Fallback semantics:
    When the multi-part user message is rejected as malformed, the request is
    resent with one user message per part. Authentication and payload-size
    failures are surfaced immediately.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from ..base.constants import MISSING_API_KEY_ERROR
from ..base.errors import AdapterError, ErrorKind, wrap_exception
from ..base.interfaces import VisionAdapter
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import Message, ProviderConfig, ProviderKind
from ..base.resilience import FallbackAttempt, FallbackChain
from ..base.streaming import StreamingCoordinator
from ..base.timeouts import get_timeout_config
from ..config.defaults import OPENAI_MAX_TOKENS
from .helpers import build_messages, build_split_messages, extract_text, parse_messages, stream_delta

try:
    from openai import OpenAI as _OpenAIClient  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    _OpenAIClient = None  # type: ignore

ClientFactory = Callable[[ProviderConfig], Any]


def default_client_factory(config: ProviderConfig) -> Any:
    """Construct an ``OpenAI`` client for one call."""
    if _OpenAIClient is None:  # pragma: no cover - depends on install
        raise RuntimeError("openai SDK not installed")
    return _OpenAIClient(
        api_key=config.api_key,
        base_url=config.base_url,
        timeout=get_timeout_config().hosted_seconds,
        max_retries=0,
    )


class CompletionsAdapter(VisionAdapter):
    """Adapter for completions-style multimodal chat APIs."""

    kind = ProviderKind.COMPLETIONS

    def __init__(self, client_factory: Optional[ClientFactory] = None, logger: Optional[logging.Logger] = None) -> None:
        self._client_factory = client_factory or default_client_factory
        self._logger = logger or get_logger("providers.openai")

    def messages_to_wire(self, messages: Sequence[Message], config: ProviderConfig) -> List[Dict[str, Any]]:
        return build_messages(messages)

    def messages_from_wire(self, wire: Any) -> List[Message]:
        return parse_messages(wire)

    def _client(self, config: ProviderConfig) -> Any:
        if not config.api_key:
            raise AdapterError(ErrorKind.UNAUTHORIZED, MISSING_API_KEY_ERROR, self.provider_name, config.model)
        return self._client_factory(config)

    def _create(self, client: Any, config: ProviderConfig, wire: List[Dict[str, Any]], stream: bool) -> Any:
        try:
            return client.chat.completions.create(
                model=config.model,
                messages=wire,
                max_tokens=OPENAI_MAX_TOKENS,
                stream=stream,
            )
        except Exception as exc:  # classified for the chain
            raise wrap_exception(exc, self.provider_name, config.model) from exc

    def _run(self, messages: Sequence[Message], config: ProviderConfig, *, stream: bool, ctx: LogContext) -> Any:
        client = self._client(config)
        primary = build_messages(messages)
        split = build_split_messages(messages)
        attempts = [FallbackAttempt("content-array", lambda: self._create(client, config, primary, stream))]
        if split != primary:
            attempts.append(FallbackAttempt("message-per-part", lambda: self._create(client, config, split, stream)))
        chain = FallbackChain(attempts, provider=self.provider_name, model=config.model, logger=self._logger, ctx=ctx)
        try:
            return chain.run()
        except AdapterError as exc:
            normalized_log_event(
                self._logger,
                "chat.error",
                ctx,
                phase="finalize",
                error_code=exc.kind.value,
                emitted=False,
                error=exc.detail,
                level=logging.ERROR,
            )
            raise

    def complete(self, messages: Sequence[Message], config: ProviderConfig) -> str:
        ctx = LogContext.new(self.provider_name, config.model)
        normalized_log_event(self._logger, "chat.start", ctx, phase="start", emitted=None, turns=len(messages))
        response = self._run(messages, config, stream=False, ctx=ctx)
        text = extract_text(response, model=config.model)
        normalized_log_event(
            self._logger,
            "chat.end",
            ctx,
            phase="finalize",
            emitted=True,
            tokens=_usage(response),
            chars=len(text),
        )
        return text

    def stream(self, messages: Sequence[Message], config: ProviderConfig) -> StreamingCoordinator:
        ctx = LogContext.new(self.provider_name, config.model)
        native = self._run(messages, config, stream=True, ctx=ctx)

        def _deltas() -> Iterator[str]:
            for chunk in native:
                delta = stream_delta(chunk)
                if delta:
                    yield delta

        closer = getattr(native, "close", None)
        return StreamingCoordinator(
            _deltas(),
            provider=self.provider_name,
            model=config.model,
            on_close=closer if callable(closer) else None,
            logger=self._logger,
            ctx=ctx,
        )


def _usage(response: Any) -> Optional[Dict[str, Any]]:
    usage = getattr(response, "usage", None)
    if usage is None:
        return None
    return {
        "prompt": getattr(usage, "prompt_tokens", None),
        "completion": getattr(usage, "completion_tokens", None),
        "total": getattr(usage, "total_tokens", None),
    }


__all__ = ["CompletionsAdapter", "default_client_factory"]
