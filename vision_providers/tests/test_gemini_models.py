"""Generative model listing: vision filter, key handling and SDK failures."""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from vision_providers.base.errors import AdapterError, ErrorKind
from vision_providers.gemini import get_gemini_models
from vision_providers.gemini.get_gemini_models import list_generative_models, supports_vision
from vision_providers.tests.utils import StatusError


def _model(name: str, methods=("generateContent",), **kwargs) -> SimpleNamespace:
    return SimpleNamespace(name=name, supported_generation_methods=list(methods), **kwargs)


LISTING = [
    _model("models/gemini-2.5-flash", display_name="Gemini 2.5 Flash", input_token_limit=1048576, output_token_limit=8192),
    _model("models/gemini-2.5-pro"),
    _model("models/gemini-embedding-001", methods=("embedContent",)),
    _model("models/text-embedding-004", methods=("embedContent",)),
    _model("models/aqa"),
    _model("models/gemini-2.5-flash-preview-tts"),
    _model("models/gemma-3-27b-it"),
]


def test_lists_vision_capable_generate_models(capture_logger, monkeypatch):
    logger, handler = capture_logger
    monkeypatch.setattr(get_gemini_models, "_logger", logger)
    keys = []

    def lister(api_key):
        keys.append(api_key)
        return iter(LISTING)

    models = list_generative_models("g-key", lister=lister)
    assert keys == ["g-key"]  # nosec B101
    assert [m.id for m in models] == ["gemini-2.5-flash", "gemini-2.5-pro"]  # nosec B101
    first = models[0]
    assert first.name == "models/gemini-2.5-flash"  # nosec B101
    assert first.display_name == "Gemini 2.5 Flash"  # nosec B101
    assert (first.input_token_limit, first.output_token_limit) == (1048576, 8192)  # nosec B101
    (event,) = handler.find("models.list")
    assert event["count"] == 2 and event["listed"] == len(LISTING)  # nosec B101


def test_missing_key_is_unauthorized_without_listing():
    calls = []
    with pytest.raises(AdapterError) as info:
        list_generative_models(None, lister=lambda key: calls.append(key) or [])
    assert info.value.kind is ErrorKind.UNAUTHORIZED  # nosec B101
    assert calls == []  # nosec B101


def test_sdk_failure_is_classified():
    def lister(api_key):
        raise StatusError("API key not valid", 403)

    with pytest.raises(AdapterError) as info:
        list_generative_models("bad", lister=lister)
    assert info.value.kind is ErrorKind.UNAUTHORIZED  # nosec B101
    assert info.value.provider == "gemini"  # nosec B101


def test_supports_vision_needs_generate_content():
    assert supports_vision(_model("models/gemini-2.0-flash"))  # nosec B101
    assert not supports_vision(_model("models/gemini-2.0-flash", methods=("countTokens",)))  # nosec B101
    assert not supports_vision(SimpleNamespace(name="models/gemini-2.0-flash"))  # nosec B101
