"""Gateway: single entry point for one analyze request.

Flow per call::

    resolve adapter -> shrink oversized images -> adapter.send(...)

When the caller asks for streaming but either the adapter or the config
cannot stream, the finished answer is wrapped so the caller still sees
``StreamStart`` followed by ``StreamComplete``.

The gateway keeps no per-request state; the registry it holds only caches
adapter instances and HTTP clients.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import List, Optional, Sequence, Union

from .base.errors import AdapterError, CompressionFailed, ErrorKind
from .base.factory import AdapterRegistry
from .base.interfaces import VisionAdapter
from .base.logging import LogContext, get_logger, normalized_log_event
from .base.models import CompressionTarget, ImagePart, Message, Part, ProviderConfig, Role
from .base.streaming import AsyncStreamIterator, StreamingCoordinator
from .images.compression import ImageCompressionEngine


class Gateway:
    """Dispatch provider-neutral messages to the configured backend.

    Parameters
    ----------
    registry:
        Caller-owned adapter registry. A private one is created when omitted
        and closed by :meth:`close`.
    engine:
        Compression engine used for parts above ``config.max_image_bytes``.
    logger:
        Optional logger; defaults to ``providers.gateway``.
    """

    def __init__(
        self,
        registry: Optional[AdapterRegistry] = None,
        *,
        engine: Optional[ImageCompressionEngine] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._owns_registry = registry is None
        self._registry = registry or AdapterRegistry(engine=engine)
        self._engine = engine or self._registry.engine
        self._logger = logger or get_logger("providers.gateway")

    @property
    def registry(self) -> AdapterRegistry:
        return self._registry

    def adapter_for(self, config: ProviderConfig) -> VisionAdapter:
        return self._registry.get(config.provider)

    def send(
        self,
        messages: Sequence[Message],
        config: ProviderConfig,
        streaming: bool = False,
    ) -> Union[str, StreamingCoordinator]:
        """Run one request and return the answer or a stream handle.

        Raises:
            AdapterError: any backend failure, or ``PAYLOAD_TOO_LARGE`` when
                every part was dropped during image shrinking.
        """
        ctx = LogContext.new(config.provider_id, config.model, streaming=streaming)
        started = time.perf_counter()
        normalized_log_event(
            self._logger,
            "gateway.start",
            ctx,
            phase="start",
            emitted=None,
            turns=len(messages),
            images=sum(len(m.images) for m in messages),
        )
        try:
            adapter = self.adapter_for(config)
            prepared = self.shrink_images(messages, config, ctx=ctx)
            if streaming and adapter.supports_streaming and config.supports_streaming:
                result: Union[str, StreamingCoordinator] = adapter.stream(prepared, config)
            elif streaming:
                text = adapter.complete(prepared, config)
                result = StreamingCoordinator.from_text(
                    text, provider=config.provider_id, model=config.model, logger=self._logger, ctx=ctx
                )
            else:
                result = adapter.complete(prepared, config)
        except AdapterError as exc:
            normalized_log_event(
                self._logger,
                "gateway.error",
                ctx,
                phase="finalize",
                error_code=exc.kind.value,
                emitted=False,
                error=exc.detail,
                duration_ms=int((time.perf_counter() - started) * 1000),
                level=logging.ERROR,
            )
            raise
        normalized_log_event(
            self._logger,
            "gateway.end",
            ctx,
            phase="finalize",
            emitted=isinstance(result, str),
            streaming=not isinstance(result, str),
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        return result

    async def asend(
        self,
        messages: Sequence[Message],
        config: ProviderConfig,
        streaming: bool = False,
    ) -> Union[str, AsyncStreamIterator]:
        """Async variant of :meth:`send`; blocking work runs in a worker thread."""
        result = await asyncio.to_thread(self.send, messages, config, streaming)
        if isinstance(result, StreamingCoordinator):
            return AsyncStreamIterator(result)
        return result

    def shrink_images(
        self,
        messages: Sequence[Message],
        config: ProviderConfig,
        *,
        ctx: Optional[LogContext] = None,
    ) -> List[Message]:
        """Return messages whose images fit ``config.max_image_bytes``.

        Parts still above the limit after compression, or that cannot be
        decoded, are dropped and logged as ``image.dropped``.
        """
        limit = config.max_image_bytes
        if not limit:
            return list(messages)
        ctx = ctx or LogContext.new(config.provider_id, config.model)
        target = CompressionTarget(max_bytes=limit)
        shrunk: List[Message] = []
        for m in messages:
            if not any(img.size > limit for img in m.images):
                shrunk.append(m)
                continue
            parts: List[Part] = []
            for p in m.parts:
                if not isinstance(p, ImagePart) or p.size <= limit:
                    parts.append(p)
                    continue
                kept = self._shrink(p, target, ctx)
                if kept is not None:
                    parts.append(kept)
            shrunk.append(m.with_parts(parts))
        if not _has_content(shrunk):
            raise AdapterError(
                ErrorKind.PAYLOAD_TOO_LARGE,
                f"no content left after dropping images over {limit} bytes",
                config.provider_id,
                config.model,
            )
        return shrunk

    def _shrink(self, image: ImagePart, target: CompressionTarget, ctx: LogContext) -> Optional[ImagePart]:
        try:
            result = self._engine.compress(image.data, image.mime_type, target)
        except CompressionFailed as exc:
            self._dropped(ctx, image, f"undecodable: {exc.reason}", image.size)
            return None
        if result.size > target.max_bytes:
            self._dropped(ctx, image, "over_limit_after_compression", result.size)
            return None
        return ImagePart(result.data, result.mime_type)

    def _dropped(self, ctx: LogContext, image: ImagePart, reason: str, size: int) -> None:
        normalized_log_event(
            self._logger,
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

    def close(self) -> None:
        if self._owns_registry:
            self._registry.close()

    def __enter__(self) -> "Gateway":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _has_content(messages: Sequence[Message]) -> bool:
    return any(
        isinstance(p, ImagePart) or not p.is_blank() for m in messages if m.role is not Role.SYSTEM for p in m.parts
    )


__all__ = ["Gateway"]
