"""Local model server helpers.

Purpose:
- Payload builders, HTTP invocation and NDJSON stream decoding for the local
  model server, kept side-effect free apart from the HTTP calls so
  ``client.py`` stays focused on orchestration.

External dependencies:
- ``httpx`` through a caller-owned :class:`HttpClientRegistry`. No SDK and no
  credential; the server is a local daemon.

Sub-protocols:
- ``generate``: ``POST /api/generate`` with ``{model, prompt, images, stream}``.
- ``chat``: ``POST /api/chat`` with ``{model, messages, stream}``; images ride
  on the most recent user turn.

Failure semantics:
- Transport failures become ``NETWORK`` errors naming the server URL.
- Non-2xx responses are classified from status and body
  (see :func:`raise_for_status`).
- Unexpected JSON shapes become ``MALFORMED``.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

import httpx

from ..base.errors import AdapterError, ErrorKind
from ..base.http import HttpClientRegistry, raise_for_status
from ..base.models import LocalProtocol, Message, ProviderConfig, Role
from ..base.timeouts import get_timeout_config, httpx_timeout
from ..base.utils.messages import last_user_index
from ..config import normalize_local_base_url
from ..config.defaults import OLLAMA_DEFAULT_HOST, OLLAMA_GENERATE_ONLY_FAMILIES
from ..images.formats import to_base64

PROVIDER = "ollama"
GENERATE_PATH = "/api/generate"
CHAT_PATH = "/api/chat"

StreamOpen = Tuple[Iterator[str], Callable[[], None]]


def resolve_base_url(config: ProviderConfig) -> str:
    return normalize_local_base_url(config.base_url or OLLAMA_DEFAULT_HOST)


def _strip_tag(model: str) -> str:
    return model.split(":", 1)[0]


def protocol_from_table(model: str, table: Dict[str, LocalProtocol]) -> Optional[LocalProtocol]:
    """Look ``model`` up by full name, then by name without its tag."""
    if model in table:
        return table[model]
    return table.get(_strip_tag(model))


def protocol_from_names(*names: Optional[str]) -> LocalProtocol:
    """Name heuristic: generate-only families use ``generate``; everything else ``chat``."""
    for name in names:
        lowered = (name or "").lower()
        if any(fragment in lowered for fragment in OLLAMA_GENERATE_ONLY_FAMILIES):
            return "generate"
    return "chat"


def timeout_for(protocol: LocalProtocol) -> float:
    cfg = get_timeout_config()
    return cfg.local_generate_seconds if protocol == "generate" else cfg.local_chat_seconds


def build_generate_payload(*, model: str, prompt: str, images: Sequence[bytes], stream: bool) -> Dict[str, Any]:
    """Construct the JSON payload for ``/api/generate``."""
    return {"model": model, "prompt": prompt, "images": [to_base64(i) for i in images], "stream": stream}


def chat_messages(messages: Sequence[Message]) -> List[Dict[str, Any]]:
    """Translate turns to ``{role, content}`` items.

    Every image in the conversation is attached to the most recent user turn.
    """
    out: List[Dict[str, Any]] = [{"role": m.role.value, "content": m.text_or_joined()} for m in messages]
    images = [to_base64(img.data) for m in messages for img in m.images]
    if images:
        idx = last_user_index(messages)
        if idx is None:
            out.append({"role": Role.USER.value, "content": "", "images": images})
        else:
            out[idx]["images"] = images
    return out


def build_chat_payload(*, model: str, messages: List[Dict[str, Any]], stream: bool) -> Dict[str, Any]:
    """Construct the JSON payload for ``/api/chat``."""
    return {"model": model, "messages": messages, "stream": stream}


def _connect_error(base_url: str, model: str, exc: Exception) -> AdapterError:
    return AdapterError(
        kind=ErrorKind.NETWORK,
        detail=f"Unable to connect to the local model server at {base_url}: {exc}",
        provider=PROVIDER,
        model=model,
        raw=exc,
    )


def post_json(
    http: HttpClientRegistry,
    base_url: str,
    path: str,
    payload: Dict[str, Any],
    *,
    timeout: float,
    model: str,
) -> Dict[str, Any]:
    """POST ``payload`` and return the decoded JSON object."""
    client = http.get(base_url, purpose="ollama")
    try:
        resp = client.post(path, json=payload, timeout=httpx_timeout(timeout))
    except httpx.TransportError as exc:
        raise _connect_error(base_url, model, exc) from exc
    raise_for_status(resp, provider=PROVIDER, model=model)
    try:
        data = resp.json()
    except ValueError as exc:
        raise AdapterError(ErrorKind.MALFORMED, f"invalid JSON from {path}", PROVIDER, model, raw=exc) from exc
    if not isinstance(data, dict):
        raise AdapterError(ErrorKind.MALFORMED, f"unexpected response shape from {path}", PROVIDER, model)
    if isinstance(data.get("error"), str):
        raise AdapterError(ErrorKind.MALFORMED, data["error"], PROVIDER, model)
    return data


def extract_generate_text(data: Dict[str, Any], *, model: str) -> str:
    text = data.get("response")
    if not isinstance(text, str):
        raise AdapterError(ErrorKind.MALFORMED, "generate response has no 'response' text", PROVIDER, model)
    return text


def extract_chat_text(data: Dict[str, Any], *, model: str) -> str:
    message = data.get("message")
    text = message.get("content") if isinstance(message, dict) else None
    if not isinstance(text, str):
        raise AdapterError(ErrorKind.MALFORMED, "chat response has no 'message.content'", PROVIDER, model)
    return text


def chat_delta(obj: Dict[str, Any]) -> Optional[str]:
    message = obj.get("message")
    return message.get("content") if isinstance(message, dict) else None


def generate_delta(obj: Dict[str, Any]) -> Optional[str]:
    value = obj.get("response")
    return value if isinstance(value, str) else None


def open_stream(
    http: HttpClientRegistry,
    base_url: str,
    path: str,
    payload: Dict[str, Any],
    *,
    timeout: float,
    model: str,
    translator: Callable[[Dict[str, Any]], Optional[str]],
) -> StreamOpen:
    """Open a streamed POST eagerly and return ``(deltas, close)``.

    The status line is checked before returning so fallback logic can react
    to an unsupported endpoint. A line that is not a JSON object, or an
    ``error`` object mid-stream, raises ``MALFORMED``.
    """
    client = http.get(base_url, purpose="ollama.stream")
    request = client.build_request("POST", path, json=payload, timeout=httpx_timeout(timeout))
    try:
        resp = client.send(request, stream=True)
    except httpx.TransportError as exc:
        raise _connect_error(base_url, model, exc) from exc
    if not resp.is_success:
        try:
            resp.read()
        finally:
            resp.close()
        raise_for_status(resp, provider=PROVIDER, model=model)

    def _deltas() -> Iterator[str]:
        try:
            for line in resp.iter_lines():
                if not line:
                    continue
                try:
                    obj = json.loads(line)
                except json.JSONDecodeError as e:
                    raise AdapterError(
                        ErrorKind.MALFORMED, f"undecodable stream line: {e}", PROVIDER, model, raw=e
                    ) from e
                if not isinstance(obj, dict):
                    raise AdapterError(ErrorKind.MALFORMED, "stream line is not a JSON object", PROVIDER, model)
                if isinstance(obj.get("error"), str):
                    raise AdapterError(ErrorKind.MALFORMED, obj["error"], PROVIDER, model)
                delta = translator(obj)
                if delta:
                    yield delta
                if obj.get("done") is True:
                    return
        except httpx.TransportError as exc:
            raise _connect_error(base_url, model, exc) from exc
        finally:
            resp.close()

    return _deltas(), resp.close


__all__ = [
    "PROVIDER",
    "GENERATE_PATH",
    "CHAT_PATH",
    "resolve_base_url",
    "protocol_from_table",
    "protocol_from_names",
    "timeout_for",
    "build_generate_payload",
    "build_chat_payload",
    "chat_messages",
    "post_json",
    "extract_generate_text",
    "extract_chat_text",
    "chat_delta",
    "generate_delta",
    "open_stream",
]
