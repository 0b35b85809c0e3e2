"""Flattening helpers shared by the adapters."""
from __future__ import annotations

from vision_providers.base.models import ImagePart, Message
from vision_providers.base.utils.messages import (
    build_transcript,
    collect_images,
    extract_system,
    flatten_prompt,
    last_user_index,
)

IMG = ImagePart(b"\x89PNG fake")


def _conversation():
    return [
        Message.system("be terse"),
        Message.user("what is this?", IMG),
        Message.assistant("a cat"),
        Message.user(IMG),
        Message.system("ignored"),
    ]


def test_extract_system_takes_first_system_turn():
    system, rest = extract_system(_conversation())
    assert system == "be terse"  # nosec B101
    assert [m.role.value for m in rest] == ["user", "assistant", "user"]  # nosec B101


def test_flatten_prompt_skips_blank_text():
    msgs = [Message.user("  ", "first"), Message.assistant("second")]
    assert flatten_prompt(msgs) == "first\nsecond"  # nosec B101


def test_build_transcript_marks_image_only_turns():
    transcript = build_transcript(_conversation()[1:4])
    assert transcript == (  # nosec B101
        "User: what is this?\n\n"
        "Assistant: a cat\n\n"
        "User: [Image provided]\n\n"
        "Assistant: "
    )


def test_collect_images_and_last_user_index():
    convo = _conversation()
    assert collect_images(convo) == [IMG, IMG]  # nosec B101
    assert last_user_index(convo) == 3  # nosec B101
    assert last_user_index([Message.assistant("x")]) is None  # nosec B101
