"""
Read-only per-call provider configuration snapshot.

External dependencies
---------------------
- Pydantic v2 ``BaseModel`` (frozen) for validation and immutability.

Notes
-----
- Built once per request, usually by :func:`vision_providers.config.load_provider_config`.
- ``api_key`` is excluded from ``repr`` so snapshots can be logged safely.
"""
from __future__ import annotations

from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .provider_kind import ProviderKind

LocalProtocol = Literal["chat", "generate"]


class ProviderConfig(BaseModel):
    """Provider settings for one gateway call.

    Attributes
    ----------
    provider:
        Backend kind; strings and aliases are parsed through
        :meth:`ProviderKind.parse`.
    model:
        Model identifier sent to the backend.
    base_url:
        Server address for the local backend, optional proxy for hosted ones.
    api_key:
        Opaque credential. May be absent for the local backend.
    max_image_bytes:
        Hard per-image byte limit; ``None`` disables gateway compression.
    supports_streaming:
        When ``False`` the gateway synthesizes a stream from one result.
    local_protocols:
        Explicit local model capability table, ``{model: "chat"|"generate"}``.
    discover_capabilities:
        Ask the local server for model families before choosing a protocol.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    provider: ProviderKind
    model: str = Field(min_length=1)
    base_url: Optional[str] = None
    api_key: Optional[str] = Field(default=None, repr=False)
    max_image_bytes: Optional[int] = Field(default=None, gt=0)
    supports_streaming: bool = True
    local_protocols: Dict[str, LocalProtocol] = Field(default_factory=dict)
    discover_capabilities: bool = False

    @field_validator("provider", mode="before")
    @classmethod
    def _parse_provider(cls, value):
        return ProviderKind.parse(value)

    @property
    def provider_id(self) -> str:
        return self.provider.value


__all__ = ["ProviderConfig", "LocalProtocol"]
