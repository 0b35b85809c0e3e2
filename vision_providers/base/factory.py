"""Adapter factory and caller-owned registry.

Purpose
-------
Map each :class:`ProviderKind` to exactly one adapter class through a lookup
table. Adapter modules are imported lazily with ``importlib`` so a missing
optional SDK only matters when its backend is used.

:class:`AdapterRegistry` holds adapter instances for one caller (usually one
:class:`Gateway`), sharing that caller's HTTP clients and compression engine.
Nothing here is module-global apart from the static table.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ..images.compression import ImageCompressionEngine
from .http import HttpClientRegistry
from .interfaces import VisionAdapter
from .models import ProviderKind


class UnknownProviderError(ValueError):
    """Raised when a provider cannot be resolved or its adapter cannot be built."""


class AdapterFactory:
    """Create adapters for a :class:`ProviderKind`."""

    _ADAPTERS: Dict[ProviderKind, Tuple[str, str]] = {
        ProviderKind.COMPLETIONS: ("vision_providers.openai.client", "CompletionsAdapter"),
        ProviderKind.GENERATIVE: ("vision_providers.gemini.client", "GenerativeAdapter"),
        ProviderKind.LOCAL: ("vision_providers.ollama.client", "LocalModelAdapter"),
        ProviderKind.MESSAGES: ("vision_providers.anthropic.client", "MessagesAdapter"),
    }

    @classmethod
    def create(cls, provider: Union[str, ProviderKind], **kwargs: Any) -> VisionAdapter:
        """Instantiate the adapter for ``provider``.

        Raises
        ------
        UnknownProviderError
            Unknown provider, failed import, missing class, or bad constructor
            arguments.
        """
        try:
            kind = ProviderKind.parse(provider)
        except ValueError as exc:
            raise UnknownProviderError(str(exc)) from exc
        module_path, class_name = cls._ADAPTERS[kind]
        try:
            mod = import_module(module_path)
        except ImportError as exc:  # pragma: no cover - import failure path
            raise UnknownProviderError(f"Failed to import '{module_path}' for provider '{kind.value}': {exc}") from exc
        klass = getattr(mod, class_name, None)
        if klass is None:
            raise UnknownProviderError(f"Adapter class '{class_name}' not found in '{module_path}'")
        try:
            return klass(**kwargs)
        except TypeError as exc:
            raise UnknownProviderError(f"Invalid arguments for '{kind.value}' adapter: {exc}") from exc

    @classmethod
    def supported(cls) -> Tuple[ProviderKind, ...]:
        return tuple(cls._ADAPTERS)


class AdapterRegistry:
    """Kind → adapter instances owned by one caller.

    Parameters
    ----------
    adapters:
        Pre-built adapters (fakes in tests) that take precedence over the
        factory.
    http:
        Shared HTTP clients for the local backend; created when omitted and
        closed by :meth:`close`.
    engine:
        Shared compression engine for adapters that compress on their own.
    """

    def __init__(
        self,
        adapters: Optional[Mapping[ProviderKind, VisionAdapter]] = None,
        *,
        http: Optional[HttpClientRegistry] = None,
        engine: Optional[ImageCompressionEngine] = None,
    ) -> None:
        self._adapters: Dict[ProviderKind, VisionAdapter] = dict(adapters or {})
        self._owns_http = http is None
        self._http = http or HttpClientRegistry()
        self._engine = engine or ImageCompressionEngine()

    @property
    def http(self) -> HttpClientRegistry:
        return self._http

    @property
    def engine(self) -> ImageCompressionEngine:
        return self._engine

    def register(self, kind: Union[str, ProviderKind], adapter: VisionAdapter) -> None:
        self._adapters[ProviderKind.parse(kind)] = adapter

    def get(self, kind: Union[str, ProviderKind]) -> VisionAdapter:
        try:
            resolved = ProviderKind.parse(kind)
        except ValueError as exc:
            raise UnknownProviderError(str(exc)) from exc
        adapter = self._adapters.get(resolved)
        if adapter is None:
            adapter = AdapterFactory.create(resolved, **self._dependencies(resolved))
            self._adapters[resolved] = adapter
        return adapter

    def _dependencies(self, kind: ProviderKind) -> Dict[str, Any]:
        if kind is ProviderKind.LOCAL:
            return {"http": self._http}
        if kind is ProviderKind.MESSAGES:
            return {"engine": self._engine}
        return {}

    def close(self) -> None:
        if self._owns_http:
            self._http.close()


__all__ = ["AdapterFactory", "AdapterRegistry", "UnknownProviderError"]
