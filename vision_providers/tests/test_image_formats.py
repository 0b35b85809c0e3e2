"""Magic-byte sniffing and data-URI helpers."""
from __future__ import annotations

import pytest

from vision_providers.images.formats import (
    BMP,
    GIF,
    JPEG,
    PNG,
    TIFF,
    WEBP,
    build_data_uri,
    detect_image_mime,
    parse_data_uri,
    wire_mime_type,
)


@pytest.mark.parametrize(
    "header, expected",
    [
        (b"\xff\xd8\xff\xe0rest", JPEG),
        (b"\x89PNG\r\n\x1a\n", PNG),
        (b"GIF89a", GIF),
        (b"RIFF\x00\x00\x00\x00WEBPVP8 ", WEBP),
        (b"BM\x00\x00", BMP),
        (b"II*\x00", TIFF),
        (b"MM\x00*", TIFF),
        (b"RIFF\x00\x00\x00\x00WAVE", None),
        (b"", None),
    ],
)
def test_detect_image_mime(header, expected):
    assert detect_image_mime(header) == expected  # nosec B101


def test_wire_mime_type_prefers_sniffed_type():
    assert wire_mime_type(b"\xff\xd8\xff", default=PNG) == JPEG  # nosec B101
    assert wire_mime_type(b"BM....", default=PNG) == JPEG  # nosec B101
    assert wire_mime_type(b"????", default=WEBP) == WEBP  # nosec B101


def test_data_uri_round_trip_and_errors():
    uri = build_data_uri(b"\x89PNG\r\n\x1a\nabc", PNG)
    assert uri.startswith("data:image/png;base64,")  # nosec B101
    assert parse_data_uri(uri) == (b"\x89PNG\r\n\x1a\nabc", PNG)  # nosec B101
    with pytest.raises(ValueError):
        parse_data_uri("https://example.com/cat.png")
    with pytest.raises(ValueError):
        parse_data_uri("data:image/png;base64,@@@")


def test_parse_data_uri_sniffs_missing_mime():
    uri = "data:;base64," + build_data_uri(b"\xff\xd8\xffdata", JPEG).split(",", 1)[1]
    assert parse_data_uri(uri)[1] == JPEG  # nosec B101
