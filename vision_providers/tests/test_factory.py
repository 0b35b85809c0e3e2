"""Adapter factory, caller-owned registry and HTTP client reuse."""
from __future__ import annotations

import httpx
import pytest

import vision_providers
from vision_providers.anthropic import MessagesAdapter
from vision_providers.base.errors import AdapterError, ErrorKind
from vision_providers.base.factory import AdapterFactory, AdapterRegistry, UnknownProviderError
from vision_providers.base.http import HttpClientRegistry, raise_for_status
from vision_providers.base.models import Message, ProviderKind
from vision_providers.gateway import Gateway
from vision_providers.gemini.client import GenerativeAdapter
from vision_providers.ollama.client import LocalModelAdapter
from vision_providers.openai.client import CompletionsAdapter
from vision_providers.tests.utils import RecordingTransport


def test_every_kind_has_an_adapter():
    expected = {
        ProviderKind.COMPLETIONS: CompletionsAdapter,
        ProviderKind.GENERATIVE: GenerativeAdapter,
        ProviderKind.LOCAL: LocalModelAdapter,
        ProviderKind.MESSAGES: MessagesAdapter,
    }
    assert set(AdapterFactory.supported()) == set(expected)  # nosec B101
    for kind, klass in expected.items():
        adapter = AdapterFactory.create(kind)
        assert isinstance(adapter, klass) and adapter.provider_name == kind.value  # nosec B101


def test_unknown_provider_and_bad_arguments():
    with pytest.raises(UnknownProviderError):
        AdapterFactory.create("carrier-pigeon")
    with pytest.raises(UnknownProviderError):
        AdapterFactory.create("openai", colour="blue")


def test_registry_caches_and_shares_dependencies():
    registry = AdapterRegistry()
    local = registry.get("local")
    assert registry.get("ollama") is local  # nosec B101
    assert local._http is registry.http  # nosec B101
    assert registry.get("claude")._engine is registry.engine  # nosec B101


def test_registered_adapters_take_precedence():
    fake = CompletionsAdapter(client_factory=lambda cfg: None)
    registry = AdapterRegistry()
    registry.register("completions", fake)
    assert registry.get("openai") is fake  # nosec B101


def test_registry_closes_only_owned_clients():
    shared = HttpClientRegistry()
    client = shared.get("http://127.0.0.1:11434")
    AdapterRegistry(http=shared).close()
    assert not client.is_closed  # nosec B101
    shared.close()
    assert client.is_closed  # nosec B101


def test_http_clients_are_reused_per_url_and_purpose():
    with HttpClientRegistry() as http:
        a = http.get("http://127.0.0.1:11434/")
        assert http.get("http://127.0.0.1:11434") is a  # nosec B101
        assert http.get("http://127.0.0.1:11434", purpose="stream") is not a  # nosec B101
    assert a.is_closed  # nosec B101
    with HttpClientRegistry() as http:
        assert http.get("http://127.0.0.1:11434") is not a  # nosec B101


@pytest.mark.parametrize(
    ("status", "body", "kind"),
    [
        (404, {"error": "model 'llava' not found, try pulling it first"}, ErrorKind.MODEL_UNAVAILABLE),
        (404, "404 page not found", ErrorKind.MALFORMED),
        (401, {"error": "unauthorized"}, ErrorKind.UNAUTHORIZED),
        (500, {"error": "runner crashed"}, ErrorKind.NETWORK),
    ],
)
def test_raise_for_status_reads_the_body(status, body, kind):
    if isinstance(body, dict):
        response = httpx.Response(status, json=body)
    else:
        response = httpx.Response(status, text=body)
    with pytest.raises(AdapterError) as info:
        raise_for_status(response, provider="ollama", model="llava")
    assert info.value.kind is kind  # nosec B101
    assert info.value.detail.startswith(f"HTTP {status}")  # nosec B101


def test_success_passes():
    raise_for_status(httpx.Response(200, json={}), provider="ollama", model="llava")


def test_analyze_helper_runs_one_request(monkeypatch):
    reply = {"message": {"role": "assistant", "content": "a cat"}, "done": True}
    transport = RecordingTransport(lambda request: httpx.Response(200, json=reply))
    original = HttpClientRegistry.__init__

    def with_transport(self, transport_arg=None):
        original(self, transport=transport)

    monkeypatch.setattr(HttpClientRegistry, "__init__", with_transport)
    text = vision_providers.analyze("ollama", [Message.user("what?")], model="llava")
    assert text == "a cat"  # nosec B101
    assert transport.paths() == ["/api/chat"]  # nosec B101


def test_analyze_stream_closes_its_gateway_when_drained(monkeypatch):
    body = b'{"message":{"content":"a "}}\n{"message":{"content":"cat"},"done":true}\n'
    transport = RecordingTransport(lambda request: httpx.Response(200, content=body))
    original = HttpClientRegistry.__init__

    def with_transport(self, transport_arg=None):
        original(self, transport=transport)

    closed = []
    original_close = Gateway.close

    def recording_close(self):
        closed.append(self)
        original_close(self)

    monkeypatch.setattr(HttpClientRegistry, "__init__", with_transport)
    monkeypatch.setattr(Gateway, "close", recording_close)
    stream = vision_providers.analyze("ollama", [Message.user("what?")], streaming=True, model="llava")
    assert closed == []  # nosec B101
    assert stream.result() == "a cat"  # nosec B101
    assert len(closed) == 1  # nosec B101
