"""Structured logging context carried through one gateway call.

``LogContext`` holds the correlation fields shared by every event of a call
(provider, model, request id) and flattens ``extra`` into the payload.
"""
from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional


@dataclass
class LogContext:
    """Structured context for adapter logging events."""

    provider: Optional[str] = None
    model: Optional[str] = None
    request_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(cls, provider: Optional[str], model: Optional[str], **extra: Any) -> "LogContext":
        return cls(provider=provider, model=model, request_id=uuid.uuid4().hex[:12], extra=dict(extra))

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        extra = data.pop("extra", {}) or {}
        data.update({k: v for k, v in extra.items() if v is not None})
        return {k: v for k, v in data.items() if v is not None}


__all__ = ["LogContext"]
