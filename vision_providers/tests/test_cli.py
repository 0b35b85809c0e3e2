"""vision-cli: argument parsing, analyze output and local model listing."""
from __future__ import annotations

import io
import json

import pytest

from vision_providers.base.errors import AdapterError, ErrorKind
from vision_providers.base.streaming import StreamingCoordinator
from vision_providers.gemini.get_gemini_models import GenerativeModelInfo
from vision_providers.ollama.get_ollama_models import LocalModelInfo, ModelVerification
from vision_providers.service.cli import main
from vision_providers.service.cli import cli_actions
from vision_providers.service.cli.cli_parser import _str2bool, build_parser


class FakeGateway:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []
        self.closed = False

    def send(self, messages, config, streaming=False):
        self.calls.append((messages, config, streaming))
        if self.error is not None:
            raise self.error
        return self.result

    def close(self):
        self.closed = True


@pytest.fixture()
def fake_gateway(monkeypatch):
    def install(**kwargs):
        gw = FakeGateway(**kwargs)
        monkeypatch.setattr(cli_actions, "Gateway", lambda: gw)
        return gw

    return install


def test_parser_defaults():
    args = build_parser().parse_args(["analyze", "--prompt", "what?"])
    assert args.provider == "ollama" and args.images == [] and args.stream is False  # nosec B101
    args = build_parser().parse_args(["analyze", "--prompt", "p", "--image", "a.png", "--image", "b.jpg", "--stream"])
    assert args.images == ["a.png", "b.jpg"] and args.stream is True  # nosec B101


@pytest.mark.parametrize(("raw", "expected"), [("yes", True), ("0", False), ("off", False), (None, True)])
def test_str2bool(raw, expected):
    assert _str2bool(raw) is expected  # nosec B101


def test_analyze_prints_answer(fake_gateway, tmp_path, smooth_png, capsys):
    image = tmp_path / "shot.bin"
    image.write_bytes(smooth_png())
    gw = fake_gateway(result="a gradient")
    argv = ["analyze", "--provider", "openai", "--model", "gpt-4o-mini", "--prompt", "what?"]
    code = main([*argv, "--image", str(image), "--system", "short"])
    assert code == 0  # nosec B101
    assert capsys.readouterr().out == "a gradient\n"  # nosec B101
    messages, config, streaming = gw.calls[0]
    assert config.model == "gpt-4o-mini" and streaming is False  # nosec B101
    assert messages[0].texts == ("short",)  # nosec B101
    assert messages[1].images[0].mime_type == "image/png"  # nosec B101
    assert gw.closed  # nosec B101


def test_analyze_streams_chunks(fake_gateway, capsys):
    fake_gateway(result=StreamingCoordinator(iter(["A ", "cat"]), provider="ollama", model="llava"))
    assert main(["analyze", "--prompt", "what?", "--stream"]) == 0  # nosec B101
    assert capsys.readouterr().out == "A cat\n"  # nosec B101


def test_analyze_prints_synthesized_stream(fake_gateway, capsys):
    fake_gateway(result=StreamingCoordinator.from_text("whole", provider="ollama", model="llava"))
    assert main(["analyze", "--prompt", "what?", "--stream"]) == 0  # nosec B101
    assert capsys.readouterr().out == "whole\n"  # nosec B101


def test_stream_failure_reports_partial_text(fake_gateway, capsys):
    def deltas():
        yield "half"
        raise AdapterError(ErrorKind.NETWORK, "connection reset", "ollama", "llava")

    fake_gateway(result=StreamingCoordinator(deltas(), provider="ollama", model="llava"))
    assert main(["analyze", "--prompt", "what?", "--stream"]) == 1  # nosec B101
    captured = capsys.readouterr()
    payload = json.loads(captured.err.strip().splitlines()[-1])
    assert payload["kind"] == "network" and payload["partial_text"] == "half"  # nosec B101


def test_adapter_error_exits_one_with_json(fake_gateway, capsys):
    error = AdapterError(ErrorKind.MODEL_UNAVAILABLE, "model 'x' not found", "ollama", "x", available_models=("llava",))
    fake_gateway(error=error)
    assert main(["analyze", "--model", "x", "--prompt", "what?"]) == 1  # nosec B101
    payload = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert payload == {  # nosec B101
        "error": "model 'x' not found",
        "kind": "model_unavailable",
        "provider": "ollama",
        "model": "x",
        "available_models": ["llava"],
    }


def test_bad_input_exits_two(fake_gateway, tmp_path, capsys):
    gw = fake_gateway(result="unused")
    assert main(["analyze", "--provider", "mystery", "--prompt", "p"]) == 2  # nosec B101
    assert main(["analyze", "--prompt", "p", "--image", str(tmp_path / "missing.png")]) == 2  # nosec B101
    assert gw.calls == []  # nosec B101


def test_injected_gateway_is_not_closed():
    gw = FakeGateway(result="ok")
    args = build_parser().parse_args(["analyze", "--prompt", "p"])
    out = io.StringIO()
    assert cli_actions.handle_analyze(args, gateway=gw, out=out) == 0  # nosec B101
    assert out.getvalue() == "ok\n" and not gw.closed  # nosec B101


def test_models_lists_names(monkeypatch, capsys):
    seen = []

    def fake_list(base_url):
        seen.append(base_url)
        return [LocalModelInfo("llava:latest", families=("llama", "clip")), LocalModelInfo("qwen2:7b", family="qwen2")]

    monkeypatch.setattr(cli_actions, "list_local_models", fake_list)
    assert main(["models", "--base-url", "localhost:11500"]) == 0  # nosec B101
    assert capsys.readouterr().out.splitlines() == ["llava:latest (vision)", "qwen2:7b"]  # nosec B101
    assert seen == ["http://127.0.0.1:11500"]  # nosec B101


def test_models_json(monkeypatch, capsys):
    monkeypatch.setattr(cli_actions, "list_local_models", lambda base_url: [LocalModelInfo("llava:latest")])
    assert main(["models", "--json"]) == 0  # nosec B101
    assert json.loads(capsys.readouterr().out)[0]["name"] == "llava:latest"  # nosec B101


def test_models_server_down(monkeypatch, capsys):
    def down(base_url):
        raise AdapterError(ErrorKind.NETWORK, f"Unable to connect to the local model server at {base_url}", "ollama", None)

    monkeypatch.setattr(cli_actions, "list_local_models", down)
    assert main(["models"]) == 1  # nosec B101
    assert json.loads(capsys.readouterr().err.strip().splitlines()[-1])["kind"] == "network"  # nosec B101


def test_models_verify(monkeypatch, capsys):
    verification = ModelVerification(exists=False, available_models=("llava:latest",), error="Model 'x' is not installed")
    monkeypatch.setattr(cli_actions, "verify_local_model", lambda base_url, model: verification)
    assert main(["models", "--verify", "x"]) == 1  # nosec B101
    assert json.loads(capsys.readouterr().out)["available_models"] == ["llava:latest"]  # nosec B101


def test_models_lists_generative_backend(monkeypatch, capsys):
    keys = []

    def fake_list(api_key):
        keys.append(api_key)
        return [GenerativeModelInfo("gemini-2.5-flash", "models/gemini-2.5-flash")]

    monkeypatch.setenv("GEMINI_API_KEY", "g-key")
    monkeypatch.setattr(cli_actions, "list_generative_models", fake_list)
    assert main(["models", "--provider", "gemini"]) == 0  # nosec B101
    assert capsys.readouterr().out.splitlines() == ["gemini-2.5-flash"]  # nosec B101
    assert keys == ["g-key"]  # nosec B101


def test_models_verify_generative_model_missing(monkeypatch, capsys):
    listing = [GenerativeModelInfo("gemini-2.5-flash", "models/gemini-2.5-flash")]
    monkeypatch.setattr(cli_actions, "list_generative_models", lambda api_key: listing)
    assert main(["models", "--provider", "google", "--verify", "gemini-9"]) == 1  # nosec B101
    payload = json.loads(capsys.readouterr().out)
    assert payload == {"model": "gemini-9", "exists": False, "available_models": ["gemini-2.5-flash"]}  # nosec B101


def test_models_generative_auth_failure_exits_one(monkeypatch, capsys):
    def denied(api_key):
        raise AdapterError(ErrorKind.UNAUTHORIZED, "missing_api_key", "gemini", None)

    monkeypatch.setattr(cli_actions, "list_generative_models", denied)
    assert main(["models", "--provider", "gemini"]) == 1  # nosec B101
    assert json.loads(capsys.readouterr().err.strip().splitlines()[-1])["kind"] == "unauthorized"  # nosec B101


def test_models_lists_messages_catalogue(capsys):
    assert main(["models", "--provider", "anthropic", "--json"]) == 0  # nosec B101
    ids = [m["id"] for m in json.loads(capsys.readouterr().out)]
    assert "claude-sonnet-4-5" in ids  # nosec B101


def test_models_verify_messages_config(monkeypatch, capsys):
    seen = []

    def fake_verify(config):
        seen.append(config)
        return True

    monkeypatch.setattr(cli_actions, "verify_messages_config", fake_verify)
    assert main(["models", "--provider", "claude", "--verify", "claude-haiku-4-5"]) == 0  # nosec B101
    assert json.loads(capsys.readouterr().out) == {"model": "claude-haiku-4-5", "exists": True}  # nosec B101
    assert seen[0].model == "claude-haiku-4-5"  # nosec B101


def test_models_unsupported_provider_exits_two(capsys):
    assert main(["models", "--provider", "openai"]) == 2  # nosec B101
    assert main(["models", "--provider", "mystery"]) == 2  # nosec B101


def test_no_command_prints_help():
    assert main([]) == 2  # nosec B101
