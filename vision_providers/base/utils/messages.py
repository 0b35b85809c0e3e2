"""Message flattening helpers shared across adapters.

Helpers here are pure and operate on provider-neutral DTOs only. They return
new values; input messages are never modified.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from ..constants import IMAGE_ONLY_TURN_MARKER, TRANSCRIPT_ASSISTANT_CUE
from ..models import ImagePart, Message, Role

_TRANSCRIPT_LABELS = {
    Role.USER: "User",
    Role.ASSISTANT: "Assistant",
    Role.SYSTEM: "System",
}


def extract_system(messages: Sequence[Message]) -> Tuple[Optional[str], List[Message]]:
    """Split the first system turn's text from the conversation turns.

    Returns ``(system_text_or_None, non_system_messages)``. Later system turns
    are dropped from the conversation as well; only the first one is kept.
    """
    system_text: Optional[str] = None
    rest: List[Message] = []
    for m in messages:
        if m.role is Role.SYSTEM:
            if system_text is None:
                system_text = m.text_or_joined()
            continue
        rest.append(m)
    return system_text, rest


def collect_images(messages: Sequence[Message]) -> List[ImagePart]:
    """All image parts in conversation order."""
    return [img for m in messages for img in m.images]


def flatten_prompt(messages: Sequence[Message]) -> str:
    """Join every non-empty text part with newlines, ignoring roles."""
    return "\n".join(t for m in messages for t in m.texts if t.strip())


def build_transcript(messages: Sequence[Message]) -> str:
    """Render turns as a ``User: ...`` / ``Assistant: ...`` transcript.

    Each turn ends with a blank line; the transcript ends with an open
    ``Assistant: `` cue. Image-only turns are rendered as a marker.
    """
    lines: List[str] = []
    for m in messages:
        text = m.text_or_joined()
        if not text.strip() and m.images:
            text = IMAGE_ONLY_TURN_MARKER
        lines.append(f"{_TRANSCRIPT_LABELS[m.role]}: {text}\n\n")
    lines.append(TRANSCRIPT_ASSISTANT_CUE)
    return "".join(lines)


def last_user_index(messages: Sequence[Message]) -> Optional[int]:
    for i in range(len(messages) - 1, -1, -1):
        if messages[i].role is Role.USER:
            return i
    return None


__all__ = [
    "extract_system",
    "collect_images",
    "flatten_prompt",
    "build_transcript",
    "last_user_index",
]
