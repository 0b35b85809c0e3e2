"""Generative backend adapter.

Uses ``google-generativeai`` (``GenerativeModel.generate_content``) for
single-shot and streamed vision requests. Generation parameters and safety
thresholds are fixed. There is no alternate request shape, so failures are
surfaced directly.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

try:
    import google.generativeai as genai  # type: ignore
except Exception:  # pragma: no cover
    genai = None  # type: ignore

from ..base.constants import MISSING_API_KEY_ERROR
from ..base.errors import AdapterError, ErrorKind, wrap_exception
from ..base.interfaces import VisionAdapter
from ..base.logging import LogContext, get_logger, normalized_log_event
from ..base.models import Message, ProviderConfig, ProviderKind
from ..base.streaming import StreamingCoordinator
from ..base.timeouts import get_timeout_config
from .helpers import (
    build_request_body,
    chunk_text,
    generation_config,
    parse_contents,
    response_text,
    safety_settings,
    sdk_contents,
)

ModelFactory = Callable[[ProviderConfig], Any]

# genai.configure mutates SDK-global state
_CONFIGURE_LOCK = threading.Lock()


def default_model_factory(config: ProviderConfig) -> Any:
    """Configure the SDK with ``config.api_key`` and return a ``GenerativeModel``."""
    if genai is None:  # pragma: no cover - depends on install
        raise RuntimeError("google-generativeai SDK not installed")
    with _CONFIGURE_LOCK:
        genai.configure(api_key=config.api_key)
        return genai.GenerativeModel(config.model)


class GenerativeAdapter(VisionAdapter):
    """Adapter for the generative-content API."""

    kind = ProviderKind.GENERATIVE

    def __init__(self, model_factory: Optional[ModelFactory] = None, logger: Optional[logging.Logger] = None) -> None:
        self._model_factory = model_factory or default_model_factory
        self._logger = logger or get_logger("providers.gemini")

    def messages_to_wire(self, messages: Sequence[Message], config: ProviderConfig) -> Dict[str, Any]:
        return build_request_body(messages)

    def messages_from_wire(self, wire: Any) -> List[Message]:
        return parse_contents(wire)

    def _generate(self, messages: Sequence[Message], config: ProviderConfig, *, stream: bool, ctx: LogContext) -> Any:
        if not config.api_key:
            raise AdapterError(ErrorKind.UNAUTHORIZED, MISSING_API_KEY_ERROR, self.provider_name, config.model)
        try:
            model = self._model_factory(config)
            return model.generate_content(
                sdk_contents(messages),
                generation_config=generation_config(),
                safety_settings=safety_settings(),
                stream=stream,
                request_options={"timeout": get_timeout_config().hosted_seconds},
            )
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
        normalized_log_event(self._logger, "chat.start", ctx, phase="start", emitted=None, turns=len(messages))
        response = self._generate(messages, config, stream=False, ctx=ctx)
        text = response_text(response, model=config.model)
        normalized_log_event(self._logger, "chat.end", ctx, phase="finalize", emitted=True, chars=len(text))
        return text

    def stream(self, messages: Sequence[Message], config: ProviderConfig) -> StreamingCoordinator:
        ctx = LogContext.new(self.provider_name, config.model)
        native = self._generate(messages, config, stream=True, ctx=ctx)

        def _deltas() -> Iterator[str]:
            for chunk in native:
                text = chunk_text(chunk, model=config.model)
                if text:
                    yield text

        return StreamingCoordinator(_deltas(), provider=self.provider_name, model=config.model, logger=self._logger, ctx=ctx)


__all__ = ["GenerativeAdapter", "default_model_factory"]
