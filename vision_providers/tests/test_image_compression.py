"""ImageCompressionEngine: budget search, floors, idempotence and failures."""
from __future__ import annotations

import io
import os

import pytest
from PIL import Image

from vision_providers.base.errors import CompressionFailed
from vision_providers.base.models import CompressionTarget
from vision_providers.images.compression import (
    MAX_ATTEMPTS,
    CompressionResult,
    ImageCompressionEngine,
    needs_compression,
    transcode_to_jpeg,
    wire_image,
)
from vision_providers.images.formats import JPEG, PNG, detect_image_mime
from vision_providers.tests.utils import image_size


@pytest.fixture()
def engine(capture_logger) -> ImageCompressionEngine:
    logger, _ = capture_logger
    return ImageCompressionEngine(logger=logger)


def test_within_budget_is_returned_unchanged(engine, smooth_png):
    data = smooth_png(32, 32)
    result = engine.compress(data, PNG, CompressionTarget(len(data)))
    assert result.data is data  # nosec B101
    assert not result.changed  # nosec B101
    assert result.attempts == 0  # nosec B101


def test_oversized_noise_fits_budget(engine, noise_png, capture_logger):
    _, handler = capture_logger
    data = noise_png(1600, 1200)
    target = CompressionTarget(1_000_000)
    result = engine.compress(data, PNG, target)
    assert result.size <= target.max_bytes  # nosec B101
    assert result.mime_type == JPEG  # nosec B101
    assert detect_image_mime(result.data) == JPEG  # nosec B101
    assert 1 <= result.attempts <= MAX_ATTEMPTS + 1  # nosec B101
    assert handler.find("image.compress.end")  # nosec B101


def test_second_pass_is_a_no_op(engine, noise_png):
    target = CompressionTarget(800_000)
    first = engine.compress(noise_png(1400, 1000), PNG, target)
    assert first.size <= target.max_bytes  # nosec B101
    second = engine.compress(first.data, first.mime_type, target)
    assert second.data == first.data  # nosec B101
    assert second.attempts == 0  # nosec B101


def test_dimension_floors_and_aspect_ratio(engine, noise_png):
    data = noise_png(1600, 1200)
    result = engine.compress(data, PNG, CompressionTarget(50_000, min_width=800, min_height=600))
    width, height = image_size(result.data)
    assert width >= 800 and height >= 600  # nosec B101
    assert abs(width / height - 1600 / 1200) < 0.01  # nosec B101
    assert result.emergency or result.size <= 50_000  # nosec B101


def test_never_upscales_small_images(engine, noise_png):
    data = noise_png(400, 300)
    result = engine.compress(data, PNG, CompressionTarget(len(data) // 3))
    assert image_size(result.data) == (400, 300)  # nosec B101


def test_corrupt_input_raises_compression_failed(engine):
    data = b"definitely not an image" * 200
    with pytest.raises(CompressionFailed) as info:
        engine.compress(data, PNG, CompressionTarget(100))
    assert info.value.input_size == len(data)  # nosec B101


def test_alpha_input_is_flattened_for_jpeg(engine):
    image = Image.frombytes("RGBA", (1000, 800), os.urandom(1000 * 800 * 4))
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    result = engine.compress(buf.getvalue(), PNG, CompressionTarget(400_000))
    assert result.mime_type == JPEG  # nosec B101
    assert detect_image_mime(result.data) == JPEG  # nosec B101


def test_compress_for_target_meets_backend_budget(engine, noise_png):
    data = noise_png(1800, 1800)
    assert len(data) > 5 * 1024 * 1024  # nosec B101
    result = engine.compress_for_target(data, PNG)
    assert result.size <= int(3.5 * 1024 * 1024)  # nosec B101


def test_compress_for_target_stops_once_under_the_initial_target(engine, monkeypatch):
    mb = 1024 * 1024
    sizes = iter([4 * mb, 3 * mb, 1 * mb])
    budgets = []

    def fake_compress(data, mime_type, target):
        budgets.append(target.max_bytes)
        return CompressionResult(b"\xff\xd8" + b"\x00" * (next(sizes) - 2), JPEG)

    monkeypatch.setattr(engine, "compress", fake_compress)
    result = engine.compress_for_target(b"x" * (6 * mb), PNG)
    assert result.size == 3 * mb  # nosec B101
    assert budgets == [int(3.5 * mb), int(int(3.5 * mb) * 0.7)]  # nosec B101


def test_compress_for_target_skips_small_inputs(engine, smooth_png):
    data = smooth_png()
    assert engine.compress_for_target(data, PNG).data is data  # nosec B101


def test_needs_compression():
    assert needs_compression(b"x" * 11, 10)  # nosec B101
    assert not needs_compression(b"x" * 10, 10)  # nosec B101
    assert not needs_compression(b"x" * 10_000, None)  # nosec B101


def test_wire_image_transcodes_unsupported_formats(bmp_bytes, smooth_png):
    data, mime = wire_image(bmp_bytes, "image/bmp")
    assert mime == JPEG and detect_image_mime(data) == JPEG  # nosec B101
    png = smooth_png()
    assert wire_image(png, JPEG) == (png, PNG)  # nosec B101
    assert wire_image(b"opaque", "image/heic") == (b"opaque", "image/heic")  # nosec B101


def test_transcode_to_jpeg_keeps_dimensions(smooth_png):
    out = transcode_to_jpeg(smooth_png(50, 40, mode="RGBA"))
    assert image_size(out) == (50, 40)  # nosec B101
