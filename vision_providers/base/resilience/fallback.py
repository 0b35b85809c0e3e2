"""Bounded fallback chain for adapter operations.

Purpose
-------
Every adapter that has an alternate request shape (a different encoding or a
different endpoint on the same backend) expresses it as an ordered list of
:class:`FallbackAttempt` values. :class:`FallbackChain` runs them in order and
enforces the shared rules once:

- the first attempt is the primary call;
- an alternate is tried only when the previous failure's kind is in the
  recoverable set (``MALFORMED`` and ``NETWORK`` by default);
- ``UNAUTHORIZED`` and ``PAYLOAD_TOO_LARGE`` are never retried, even if a
  caller lists them as recoverable;
- each attempt runs at most once, so the chain length bounds the work;
- when every attempt fails, the *original* error is re-raised.

Failure modes
-------------
Non-``AdapterError`` exceptions raised by an attempt are classified with
:func:`wrap_exception` before the rules above are applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, Generic, Iterable, Optional, Sequence, TypeVar

from ..errors import AdapterError, ErrorKind, wrap_exception
from ..logging import LogContext, get_logger, normalized_log_event

T = TypeVar("T")

DEFAULT_RECOVERABLE: FrozenSet[ErrorKind] = frozenset({ErrorKind.MALFORMED, ErrorKind.NETWORK})
NEVER_RECOVERABLE: FrozenSet[ErrorKind] = frozenset({ErrorKind.UNAUTHORIZED, ErrorKind.PAYLOAD_TOO_LARGE})


@dataclass(frozen=True)
class FallbackAttempt(Generic[T]):
    """One named way of performing an operation."""

    name: str
    call: Callable[[], T]


class FallbackChain(Generic[T]):
    """Run ``attempts`` in order until one succeeds."""

    def __init__(
        self,
        attempts: Sequence[FallbackAttempt[T]],
        *,
        provider: str,
        model: Optional[str] = None,
        recoverable: Iterable[ErrorKind] = DEFAULT_RECOVERABLE,
        logger: Optional[logging.Logger] = None,
        ctx: Optional[LogContext] = None,
    ) -> None:
        if not attempts:
            raise ValueError("FallbackChain needs at least one attempt")
        self._attempts = tuple(attempts)
        self._provider = provider
        self._model = model
        self._recoverable = frozenset(recoverable) - NEVER_RECOVERABLE
        self._logger = logger or get_logger("providers.fallback")
        self._ctx = ctx or LogContext(provider=provider, model=model)
        self.tried: list[str] = []

    @property
    def attempt_names(self) -> tuple[str, ...]:
        return tuple(a.name for a in self._attempts)

    def is_recoverable(self, error: AdapterError) -> bool:
        return error.kind in self._recoverable

    def run(self) -> T:
        """Execute the chain and return the first successful result.

        Raises:
            AdapterError: the primary attempt's error when it is not
                recoverable or when every alternate also fails.
        """
        original: Optional[AdapterError] = None
        for index, attempt in enumerate(self._attempts, start=1):
            self.tried.append(attempt.name)
            try:
                return attempt.call()
            except Exception as exc:  # classified below
                error = wrap_exception(exc, self._provider, self._model)
                normalized_log_event(
                    self._logger,
                    "fallback.attempt",
                    self._ctx,
                    phase="fallback",
                    attempt=index,
                    error_code=error.kind.value,
                    emitted=False,
                    strategy=attempt.name,
                    error=error.detail,
                )
                if original is None:
                    original = error
                if not self.is_recoverable(error):
                    break
        assert original is not None  # nosec B101 - loop ran at least once
        if len(self.tried) > 1:
            normalized_log_event(
                self._logger,
                "fallback.exhausted",
                self._ctx,
                phase="fallback",
                attempt=len(self.tried),
                error_code=original.kind.value,
                emitted=False,
                tried=list(self.tried),
            )
        raise original from original.raw


__all__ = ["DEFAULT_RECOVERABLE", "NEVER_RECOVERABLE", "FallbackAttempt", "FallbackChain"]
