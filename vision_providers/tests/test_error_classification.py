"""Error taxonomy: status mapping, heuristics and AdapterError rendering."""
from __future__ import annotations

import types

import httpx
import pytest

from vision_providers.base.errors import (
    AdapterError,
    CompressionFailed,
    ErrorKind,
    classify_exception,
    classify_status,
    wrap_exception,
)


def test_adapter_error_passthrough_and_str():
    err = AdapterError(ErrorKind.UNAUTHORIZED, "bad key", "openai", "gpt-4o")
    assert classify_exception(err) is ErrorKind.UNAUTHORIZED  # nosec B101
    assert wrap_exception(err, "other") is err  # nosec B101
    assert str(err) == "openai:gpt-4o unauthorized: bad key"  # nosec B101
    assert not err.recoverable  # nosec B101


def test_available_models_is_a_tuple():
    err = AdapterError(ErrorKind.MODEL_UNAVAILABLE, "missing", "ollama", "x", available_models=["a", "b"])
    assert err.available_models == ("a", "b")  # nosec B101


@pytest.mark.parametrize(
    "status, message, expected",
    [
        (401, "", ErrorKind.UNAUTHORIZED),
        (403, "", ErrorKind.UNAUTHORIZED),
        (400, "API key not valid. Please pass a valid API key.", ErrorKind.UNAUTHORIZED),
        (404, "404 page not found", ErrorKind.MALFORMED),
        (404, 'model "llava" not found, try pulling it first', ErrorKind.MODEL_UNAVAILABLE),
        (408, "", ErrorKind.NETWORK),
        (413, "", ErrorKind.PAYLOAD_TOO_LARGE),
        (400, "image exceeds 5 MB maximum size", ErrorKind.PAYLOAD_TOO_LARGE),
        (400, "messages.0.content.1.image.source.base64: image exceeds 5 MB maximum", ErrorKind.PAYLOAD_TOO_LARGE),
        (400, "request exceeds the maximum allowed", ErrorKind.PAYLOAD_TOO_LARGE),
        (400, "temperature exceeds range", ErrorKind.MALFORMED),
        (429, "slow down", ErrorKind.NETWORK),
        (503, "", ErrorKind.NETWORK),
        (400, "invalid content type", ErrorKind.MALFORMED),
    ],
)
def test_classify_status(status, message, expected):
    assert classify_status(status, message) is expected  # nosec B101


def test_status_extracted_from_response_attribute():
    exc = types.SimpleNamespace(response=types.SimpleNamespace(status_code=401))
    assert classify_exception(exc) is ErrorKind.UNAUTHORIZED  # type: ignore[arg-type]  # nosec B101


def test_transport_failures_are_network():
    request = httpx.Request("POST", "http://127.0.0.1:11434/api/chat")
    assert classify_exception(httpx.ConnectError("refused", request=request)) is ErrorKind.NETWORK  # nosec B101
    assert classify_exception(TimeoutError()) is ErrorKind.NETWORK  # nosec B101
    assert classify_exception(ConnectionResetError()) is ErrorKind.NETWORK  # nosec B101


def test_message_heuristics_and_fallback():
    assert classify_exception(Exception("Request timed out")) is ErrorKind.NETWORK  # nosec B101
    assert classify_exception(Exception("permission denied for project")) is ErrorKind.UNAUTHORIZED  # nosec B101
    assert classify_exception(Exception("request too large")) is ErrorKind.PAYLOAD_TOO_LARGE  # nosec B101
    assert classify_exception(Exception("model gpt-9 does not exist")) is ErrorKind.MODEL_UNAVAILABLE  # nosec B101
    assert classify_exception(Exception("something odd")) is ErrorKind.MALFORMED  # nosec B101


def test_wrap_exception_keeps_cause():
    cause = RuntimeError("boom")
    err = wrap_exception(cause, "gemini", "gemini-2.5-flash")
    assert err.raw is cause  # nosec B101
    assert err.kind is ErrorKind.MALFORMED  # nosec B101
    assert err.recoverable  # nosec B101


def test_compression_failed_is_value_error():
    exc = CompressionFailed("cannot decode", input_size=12, mime_type="image/png")
    assert isinstance(exc, ValueError)  # nosec B101
    assert exc.reason == "cannot decode"  # nosec B101
    assert exc.input_size == 12  # nosec B101
