"""
Abstract base class every backend adapter implements.

An adapter translates provider-neutral :class:`Message` sequences to one
backend's wire format, performs the call, and returns either the finished
text or a :class:`StreamingCoordinator`. Failures are raised as
:class:`AdapterError`; adapters never return partial or empty results silently.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, List, Sequence, Union

from ..models import Message, ProviderConfig, ProviderKind
from ..streaming import StreamingCoordinator

SendResult = Union[str, StreamingCoordinator]


class VisionAdapter(ABC):
    """Translation + transport layer for one backend."""

    kind: ClassVar[ProviderKind]
    supports_streaming: ClassVar[bool] = True

    @property
    def provider_name(self) -> str:
        return self.kind.value

    def send(self, messages: Sequence[Message], config: ProviderConfig, streaming: bool = False) -> SendResult:
        """Dispatch ``messages``; a coordinator is returned when ``streaming`` is set."""
        if streaming:
            return self.stream(messages, config)
        return self.complete(messages, config)

    @abstractmethod
    def complete(self, messages: Sequence[Message], config: ProviderConfig) -> str:
        """Run a non-streaming call and return the answer text."""

    def stream(self, messages: Sequence[Message], config: ProviderConfig) -> StreamingCoordinator:
        """Open a streamed call. Adapters without native streaming do not override this."""
        raise NotImplementedError(f"{self.provider_name} does not stream")

    @abstractmethod
    def messages_to_wire(self, messages: Sequence[Message], config: ProviderConfig) -> Any:
        """Return the backend request body (or its message portion) for ``messages``."""

    @abstractmethod
    def messages_from_wire(self, wire: Any) -> List[Message]:
        """Parse a wire message list back into :class:`Message` values (text turns)."""


__all__ = ["VisionAdapter", "SendResult"]
