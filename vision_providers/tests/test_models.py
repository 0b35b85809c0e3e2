"""Provider-neutral DTOs: messages, parts, provider kinds and config snapshots."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from vision_providers.base.models import (
    CompressionTarget,
    ImagePart,
    Message,
    ProviderConfig,
    ProviderKind,
    Role,
    TextPart,
)


def test_user_message_coerces_strings_and_keeps_order():
    img = ImagePart(b"\x89PNG....")
    msg = Message.user("describe", img, "briefly")
    assert msg.role is Role.USER  # nosec B101
    assert msg.parts == (TextPart("describe"), img, TextPart("briefly"))  # nosec B101
    assert msg.texts == ("describe", "briefly")  # nosec B101
    assert msg.images == (img,)  # nosec B101
    assert msg.text_or_joined() == "describe\nbriefly"  # nosec B101


def test_message_rejects_unknown_part_types():
    with pytest.raises(TypeError):
        Message(Role.USER, ("plain string",))  # type: ignore[arg-type]


def test_message_role_accepts_string_value():
    assert Message("assistant", (TextPart("ok"),)).role is Role.ASSISTANT  # type: ignore[arg-type]  # nosec B101


def test_with_parts_returns_new_message():
    original = Message.user("a", ImagePart(b"x"))
    trimmed = original.with_parts([TextPart("a")])
    assert original.images  # nosec B101
    assert trimmed.images == ()  # nosec B101
    assert trimmed.role is Role.USER  # nosec B101


def test_image_part_requires_bytes_and_normalizes_buffers():
    assert ImagePart(bytearray(b"abc")).data == b"abc"  # nosec B101
    assert ImagePart(memoryview(b"abc")).size == 3  # nosec B101
    with pytest.raises(TypeError):
        ImagePart("data:image/png;base64,AAAA")  # type: ignore[arg-type]


def test_image_part_repr_hides_bytes():
    assert "size=4" in repr(ImagePart(b"\x00\x01\x02\x03"))  # nosec B101


def test_text_part_blank_detection():
    assert TextPart("  \n").is_blank()  # nosec B101
    assert not TextPart(" x ").is_blank()  # nosec B101


@pytest.mark.parametrize(
    "value, expected",
    [
        ("openai", ProviderKind.COMPLETIONS),
        ("Gemini", ProviderKind.GENERATIVE),
        ("google", ProviderKind.GENERATIVE),
        (" ollama ", ProviderKind.LOCAL),
        ("claude", ProviderKind.MESSAGES),
        ("azure-foundry", ProviderKind.MESSAGES),
        (ProviderKind.MESSAGES, ProviderKind.MESSAGES),
    ],
)
def test_provider_kind_parse(value, expected):
    assert ProviderKind.parse(value) is expected  # nosec B101


def test_provider_kind_parse_rejects_unknown():
    with pytest.raises(ValueError):
        ProviderKind.parse("mystery")


def test_provider_config_is_frozen_and_strict():
    cfg = ProviderConfig(provider="claude", model="claude-sonnet-4-5", api_key="sk-live")
    assert cfg.provider is ProviderKind.MESSAGES  # nosec B101
    assert cfg.provider_id == "anthropic"  # nosec B101
    assert "sk-live" not in repr(cfg)  # nosec B101
    with pytest.raises(ValidationError):
        cfg.model = "other"  # type: ignore[misc]
    with pytest.raises(ValidationError):
        ProviderConfig(provider="openai", model="gpt-4o", temperature=0.1)  # type: ignore[call-arg]


def test_provider_config_validates_fields():
    with pytest.raises(ValidationError):
        ProviderConfig(provider="openai", model="")
    with pytest.raises(ValidationError):
        ProviderConfig(provider="openai", model="gpt-4o", max_image_bytes=0)
    with pytest.raises(ValidationError):
        ProviderConfig(provider="ollama", model="llava", local_protocols={"llava": "complete"})


def test_compression_target_validation_and_scaling():
    target = CompressionTarget(1000)
    assert (target.min_width, target.min_height) == (800, 600)  # nosec B101
    assert target.scaled(0.7).max_bytes == 700  # nosec B101
    with pytest.raises(ValueError):
        CompressionTarget(0)
    with pytest.raises(ValueError):
        CompressionTarget(10, min_width=0)
