"""vision_providers package

Multi-backend gateway for "analyze these inputs" requests: text plus zero or
more images, dispatched to a completions-style API, a generative-content API,
a locally hosted model server or a messages-style API.

Public API (re-exported):
    - Version: ``__version__``
    - Entry point: :class:`Gateway`, :func:`analyze`
    - Models: :class:`Message`, :class:`TextPart`, :class:`ImagePart`,
      :class:`ProviderConfig`, :class:`ProviderKind`
    - Errors: :class:`AdapterError`, :class:`ErrorKind`
    - Streaming events: ``StreamStart``, ``StreamChunk``, ``StreamComplete``,
      ``StreamError``
    - Configuration: :func:`load_provider_config`
"""

from typing import Any, Sequence, Union

from .base.errors import AdapterError, CompressionFailed, ErrorKind, StreamStateError
from .base.models import CompressionTarget, ImagePart, Message, ProviderConfig, ProviderKind, Role, TextPart
from .base.streaming import (
    StreamChunk,
    StreamComplete,
    StreamError,
    StreamingCoordinator,
    StreamStart,
)
from .config import load_provider_config
from .gateway import Gateway

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Gateway",
    "analyze",
    "Role",
    "TextPart",
    "ImagePart",
    "Message",
    "ProviderKind",
    "ProviderConfig",
    "CompressionTarget",
    "ErrorKind",
    "AdapterError",
    "CompressionFailed",
    "StreamStateError",
    "StreamingCoordinator",
    "StreamStart",
    "StreamChunk",
    "StreamComplete",
    "StreamError",
    "load_provider_config",
]


def analyze(
    provider: str,
    messages: Sequence[Message],
    *,
    streaming: bool = False,
    **overrides: Any,
) -> Union[str, StreamingCoordinator]:
    """One-shot helper: load config for ``provider`` and send ``messages``.

    A private :class:`Gateway` is used for the call. It is closed before
    returning a text answer, or when a returned stream is drained or closed.
    Callers that stream repeatedly should hold their own :class:`Gateway` so
    HTTP clients are reused.
    """
    config = load_provider_config(provider, **overrides)
    gateway = Gateway()
    try:
        result = gateway.send(messages, config, streaming=streaming)
    except AdapterError:
        gateway.close()
        raise
    if isinstance(result, str):
        gateway.close()
    else:
        result.add_close_callback(gateway.close)
    return result
