"""Caller-owned registry of ``httpx`` clients.

Purpose:
    Adapters talk to the local backend through ``httpx.Client`` instances.
    Instead of a module-global pool, a :class:`HttpClientRegistry` is created
    by the caller (usually the gateway) and passed by reference, so there is
    no hidden cross-request state and tests can inject a client built on
    ``httpx.MockTransport``.

Lifecycle & cleanup:
    - Clients are cached by ``(base_url, purpose)`` under an ``RLock``.
    - ``close()`` (or leaving the ``with`` block) closes every owned client.
      Clients supplied through ``transport`` share that transport.

Timeouts:
    Clients carry no default timeout; every request passes the explicit value
    from :mod:`vision_providers.base.timeouts`.
"""
from __future__ import annotations

import threading
from typing import Dict, Optional, Tuple

import httpx

from ..errors import AdapterError, classify_status


class HttpClientRegistry:
    """Create and reuse ``httpx.Client`` objects keyed by base URL and purpose."""

    def __init__(self, transport: Optional[httpx.BaseTransport] = None) -> None:
        self._transport = transport
        self._clients: Dict[Tuple[str, str], httpx.Client] = {}
        self._lock = threading.RLock()

    def get(self, base_url: str, purpose: str = "default") -> httpx.Client:
        """Return the client for ``base_url``/``purpose``, creating it on first use."""
        key = (base_url.rstrip("/"), purpose)
        with self._lock:
            client = self._clients.get(key)
            if client is None or client.is_closed:
                client = httpx.Client(base_url=key[0], transport=self._transport, timeout=None)
                self._clients[key] = client
            return client

    def close(self) -> None:
        with self._lock:
            for client in self._clients.values():
                client.close()
            self._clients.clear()

    def __enter__(self) -> "HttpClientRegistry":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def raise_for_status(response: httpx.Response, *, provider: str, model: Optional[str]) -> None:
    """Raise :class:`AdapterError` for non-2xx responses, classifying by status and body.

    Streaming responses must be read before calling this; the body text is what
    distinguishes a missing model from an unsupported endpoint.
    """
    if response.is_success:
        return
    body = _error_text(response)
    raise AdapterError(
        kind=classify_status(response.status_code, body),
        detail=f"HTTP {response.status_code}: {body}" if body else f"HTTP {response.status_code}",
        provider=provider,
        model=model,
    )


def _error_text(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        return data["error"]
    return response.text.strip()


__all__ = ["HttpClientRegistry", "raise_for_status"]
