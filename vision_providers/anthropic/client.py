"""Messages backend adapter.

Implements the messages-style API (Anthropic, including Azure AI Foundry
deployments reached through ``base_url``) with ``anthropic>=0.34``
``client.messages.create`` for single-shot and streamed requests.

Key behaviors:
* Images are compressed against this backend's tighter budget before
  encoding; images that stay oversized are dropped, not fatal.
* Declared image types are ignored in favour of magic-byte detection.
* The first system turn becomes the top-level ``system`` field.
* Streaming surfaces only ``content_block_delta`` text deltas.
* There is no alternate request shape; failures are surfaced directly.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

try:
    import anthropic  # type: ignore
except Exception:  # pragma: no cover
    anthropic = None  # type: ignore

from ..base.constants import MISSING_API_KEY_ERROR
from ..base.errors import AdapterError, ErrorKind, wrap_exception
from ..base.interfaces import VisionAdapter
from ..base.logging import LogContext, get_logger, log_event, normalized_log_event
from ..base.models import Message, ProviderConfig, ProviderKind
from ..base.streaming import StreamingCoordinator
from ..base.timeouts import get_timeout_config
from ..images.compression import ImageCompressionEngine
from .helpers import (
    PROVIDER,
    VERIFY_MAX_TOKENS,
    build_params,
    event_text,
    parse_params,
    prepare_messages,
    response_text,
    usage_tokens,
)

ClientFactory = Callable[[ProviderConfig], Any]


def default_client_factory(config: ProviderConfig) -> Any:
    """Construct an ``anthropic.Anthropic`` client for one call."""
    if anthropic is None:  # pragma: no cover - depends on install
        raise RuntimeError("anthropic SDK not installed")
    return anthropic.Anthropic(
        api_key=config.api_key,
        base_url=config.base_url,
        timeout=get_timeout_config().hosted_seconds,
        max_retries=0,
    )


class MessagesAdapter(VisionAdapter):
    """Adapter for messages-style APIs with block-typed content."""

    kind = ProviderKind.MESSAGES

    def __init__(
        self,
        client_factory: Optional[ClientFactory] = None,
        engine: Optional[ImageCompressionEngine] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._client_factory = client_factory or default_client_factory
        self._engine = engine or ImageCompressionEngine()
        self._logger = logger or get_logger("providers.anthropic")

    def messages_to_wire(self, messages: Sequence[Message], config: ProviderConfig) -> Dict[str, Any]:
        ctx = LogContext(provider=self.provider_name, model=config.model)
        prepared = prepare_messages(
            messages, engine=self._engine, max_bytes=config.max_image_bytes, logger=self._logger, ctx=ctx
        )
        return build_params(prepared, model=config.model)

    def messages_from_wire(self, wire: Any) -> List[Message]:
        return parse_params(wire)

    def _create(self, messages: Sequence[Message], config: ProviderConfig, *, stream: bool, ctx: LogContext) -> Any:
        if not config.api_key:
            raise AdapterError(ErrorKind.UNAUTHORIZED, MISSING_API_KEY_ERROR, self.provider_name, config.model)
        prepared = prepare_messages(
            messages, engine=self._engine, max_bytes=config.max_image_bytes, logger=self._logger, ctx=ctx
        )
        params = build_params(prepared, model=config.model)
        normalized_log_event(
            self._logger,
            "chat.start",
            ctx,
            phase="start",
            emitted=None,
            turns=len(params["messages"]),
            has_system="system" in params,
            max_tokens=params["max_tokens"],
        )
        try:
            client = self._client_factory(config)
            if stream:
                return client.messages.create(**params, stream=True)
            return client.messages.create(**params)
        except Exception as exc:
            error = wrap_exception(exc, self.provider_name, config.model)
            normalized_log_event(
                self._logger,
                "chat.error",
                ctx,
                phase="finalize",
                error_code=error.kind.value,
                emitted=False,
                error=error.detail,
                level=logging.ERROR,
            )
            raise error from exc

    def complete(self, messages: Sequence[Message], config: ProviderConfig) -> str:
        ctx = LogContext.new(self.provider_name, config.model)
        response = self._create(messages, config, stream=False, ctx=ctx)
        text = response_text(response, model=config.model)
        normalized_log_event(
            self._logger,
            "chat.end",
            ctx,
            phase="finalize",
            emitted=True,
            tokens=usage_tokens(response),
            chars=len(text),
        )
        return text

    def stream(self, messages: Sequence[Message], config: ProviderConfig) -> StreamingCoordinator:
        ctx = LogContext.new(self.provider_name, config.model)
        native = self._create(messages, config, stream=True, ctx=ctx)

        def _deltas() -> Iterator[str]:
            for event in native:
                text = event_text(event)
                if text:
                    yield text

        closer = getattr(native, "close", None)
        return StreamingCoordinator(
            _deltas(),
            provider=self.provider_name,
            model=config.model,
            on_close=closer if callable(closer) else None,
            logger=self._logger,
            ctx=ctx,
        )


def verify_messages_config(config: ProviderConfig, client_factory: Optional[ClientFactory] = None) -> bool:
    """Send a one-line message to check that ``config`` is usable; never raises.

    Uses the short verification timeout and a tiny ``max_tokens``. The outcome
    and any classified failure are logged as ``models.verify``.
    """
    ctx = LogContext(provider=PROVIDER, model=config.model)
    logger = get_logger("providers.anthropic")
    if not config.api_key:
        log_event(logger, "models.verify", ctx, ok=False, error_code=ErrorKind.UNAUTHORIZED.value)
        return False
    try:
        client = (client_factory or default_client_factory)(config)
        response = client.messages.create(
            model=config.model,
            messages=[{"role": "user", "content": "Hello"}],
            max_tokens=VERIFY_MAX_TOKENS,
            timeout=get_timeout_config().verification_seconds,
        )
    except Exception as exc:
        error = wrap_exception(exc, PROVIDER, config.model)
        log_event(
            logger, "models.verify", ctx, level=logging.WARNING, ok=False, error_code=error.kind.value, error=error.detail
        )
        return False
    ok = response is not None
    log_event(logger, "models.verify", ctx, ok=ok)
    return ok


__all__ = ["MessagesAdapter", "default_client_factory", "verify_messages_config"]
