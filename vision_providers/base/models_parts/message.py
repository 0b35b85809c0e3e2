"""
Message DTO used across adapters.

Defines the immutable ``Message`` dataclass: a role plus an ordered tuple of
parts. Adapters never mutate a message; helpers that change content return a
new instance.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple, Union

from .parts import ImagePart, Part, TextPart
from .role import Role


@dataclass(frozen=True)
class Message:
    """A single conversation turn.

    Attributes:
        role: The author of the turn.
        parts: Ordered text and image parts. Lists are accepted and frozen to
            a tuple.
    """

    role: Role
    parts: Tuple[Part, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", Role(self.role))
        parts = tuple(self.parts)
        for p in parts:
            if not isinstance(p, (TextPart, ImagePart)):
                raise TypeError(f"unsupported message part: {type(p).__name__}")
        object.__setattr__(self, "parts", parts)

    @classmethod
    def user(cls, *parts: Union[Part, str]) -> "Message":
        return cls(Role.USER, _coerce(parts))

    @classmethod
    def assistant(cls, text: str) -> "Message":
        return cls(Role.ASSISTANT, (TextPart(text),))

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(Role.SYSTEM, (TextPart(text),))

    @property
    def texts(self) -> Tuple[str, ...]:
        return tuple(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def images(self) -> Tuple[ImagePart, ...]:
        return tuple(p for p in self.parts if isinstance(p, ImagePart))

    def text_or_joined(self) -> str:
        """Return the text parts joined by newlines (images are skipped)."""
        return "\n".join(self.texts)

    def with_parts(self, parts: Iterable[Part]) -> "Message":
        """Return a copy of this turn carrying ``parts`` instead."""
        return Message(self.role, tuple(parts))


def _coerce(parts: Iterable[Union[Part, str]]) -> Tuple[Part, ...]:
    return tuple(TextPart(p) if isinstance(p, str) else p for p in parts)


__all__ = ["Message"]
