"""Shared fixtures for the vision gateway test suite.

Image builders (smooth and noise PNGs), a log collector attached to an
isolated logger, and a local-server factory backed by ``httpx.MockTransport``.
"""

from __future__ import annotations

import io
import logging
import os
from typing import Callable, Iterator, List

import httpx
import pytest
from PIL import Image

from vision_providers.base.http import HttpClientRegistry
from vision_providers.tests.utils import ListHandler, RecordingTransport


def _save(image: Image.Image, fmt: str) -> bytes:
    out = io.BytesIO()
    image.save(out, format=fmt)
    return out.getvalue()


@pytest.fixture()
def capture_logger() -> Iterator[tuple[logging.Logger, ListHandler]]:
    """Isolated logger with a collecting handler, passed to components under test."""
    logger = logging.getLogger("providers.tests.capture")
    handler = ListHandler()
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG)
    logger.propagate = False
    try:
        yield logger, handler
    finally:
        logger.handlers[:] = []


@pytest.fixture()
def smooth_png() -> Callable[..., bytes]:
    """Gradient PNG builder; compresses well and decodes quickly."""

    def build(width: int = 64, height: int = 48, mode: str = "RGB") -> bytes:
        image = Image.linear_gradient("L").resize((width, height))
        if mode != "L":
            image = image.convert(mode)
        return _save(image, "PNG")

    return build


@pytest.fixture()
def noise_png() -> Callable[[int, int], bytes]:
    """Random-pixel PNG builder; the encoded size stays close to ``w * h * 3``."""

    def build(width: int, height: int) -> bytes:
        image = Image.frombytes("RGB", (width, height), os.urandom(width * height * 3))
        return _save(image, "PNG")

    return build


@pytest.fixture()
def bmp_bytes() -> bytes:
    return _save(Image.new("RGB", (8, 8), (200, 10, 10)), "BMP")


@pytest.fixture()
def local_server() -> Iterator[Callable[[Callable[[httpx.Request], httpx.Response]], tuple]]:
    """Build ``(HttpClientRegistry, RecordingTransport)`` pairs for a handler."""
    registries: List[HttpClientRegistry] = []

    def build(handler: Callable[[httpx.Request], httpx.Response]) -> tuple:
        transport = RecordingTransport(handler)
        registry = HttpClientRegistry(transport=transport)
        registries.append(registry)
        return registry, transport

    yield build
    for r in registries:
        r.close()


@pytest.fixture(autouse=True)
def isolated_provider_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop credentials and config-file settings inherited from the host."""
    for name in (
        "PROVIDERS_CONFIG_FILE",
        "OPENAI_API_KEY",
        "GEMINI_API_KEY",
        "GOOGLE_API_KEY",
        "ANTHROPIC_API_KEY",
        "AZURE_FOUNDRY_API_KEY",
        "OLLAMA_HOST",
        "OLLAMA_MODEL",
        "OLLAMA_BASE_URL",
        "OPENAI_MODEL",
        "ANTHROPIC_MODEL",
        "GEMINI_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("vision_providers.config._FILE_CACHE", None)
    monkeypatch.setattr("vision_providers.config._FILE_CACHE_PATH", None)
