"""Shared test doubles for the gateway test suite.

Fake SDK clients mirror only the attribute paths the adapters touch
(``chat.completions.create``, ``messages.create``, ``generate_content``).
``RecordingTransport`` wraps ``httpx.MockTransport`` for the local backend.
"""
from __future__ import annotations

import io
import json
import logging
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import httpx
from PIL import Image


class ListHandler(logging.Handler):
    """Capture structured log payloads into a list."""

    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.events: List[Dict[str, Any]] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            payload = json.loads(record.getMessage())
        except ValueError:
            payload = {"msg": record.getMessage()}
        if not isinstance(payload, dict):
            payload = {"msg": record.getMessage()}
        payload["_level"] = record.levelno
        self.events.append(payload)

    def names(self) -> List[Optional[str]]:
        return [e.get("event") for e in self.events]

    def find(self, event: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e.get("event") == event]


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.size


# ---- Local server ---------------------------------------------------------


class RecordingTransport(httpx.MockTransport):
    """``MockTransport`` that remembers every request."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def bodies(self, path: Optional[str] = None) -> List[Dict[str, Any]]:
        return [json.loads(r.content or b"{}") for r in self.requests if path is None or r.url.path == path]

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


def ndjson(*objects: Dict[str, Any]) -> bytes:
    return b"".join(json.dumps(o).encode("utf-8") + b"\n" for o in objects)


# ---- Hosted SDK fakes -----------------------------------------------------


class StatusError(Exception):
    """SDK-style exception carrying an HTTP status."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class FakeCompletions:
    """Stands in for ``OpenAI().chat.completions``; pops one outcome per call."""

    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def client(self) -> SimpleNamespace:
        return SimpleNamespace(chat=SimpleNamespace(completions=self))


def completion(text: Optional[str]) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(prompt_tokens=3, completion_tokens=5, total_tokens=8),
    )


def completion_chunk(text: Optional[str]) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


class FakeMessages:
    """Stands in for ``anthropic.Anthropic().messages``."""

    def __init__(self, outcome: Any) -> None:
        self.outcome = outcome
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    def client(self) -> SimpleNamespace:
        return SimpleNamespace(messages=self)


def messages_response(text: str) -> SimpleNamespace:
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=10, output_tokens=4),
    )


def text_delta_event(text: str) -> SimpleNamespace:
    return SimpleNamespace(type="content_block_delta", delta=SimpleNamespace(type="text_delta", text=text))


class FakeGenerativeModel:
    """Stands in for ``genai.GenerativeModel``."""

    def __init__(self, outcome: Any) -> None:
        self.outcome = outcome
        self.calls: List[Dict[str, Any]] = []

    def generate_content(self, contents: Any, **kwargs: Any) -> Any:
        self.calls.append({"contents": contents, **kwargs})
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


class FakeEngine:
    """Compression engine double returning fixed bytes."""

    def __init__(self, data: bytes, mime_type: str = "image/jpeg") -> None:
        self.data = data
        self.mime_type = mime_type
        self.calls: List[Any] = []

    def _result(self):
        from vision_providers.images.compression import CompressionResult

        return CompressionResult(self.data, self.mime_type)

    def compress(self, data: bytes, mime_type: str, target: Any):
        self.calls.append(("compress", len(data), target))
        return self._result()

    def compress_for_target(self, data: bytes, mime_type: str, **kwargs: Any):
        self.calls.append(("compress_for_target", len(data), kwargs))
        return self._result()
