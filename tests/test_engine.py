"""
Tests for the watermark engine and its file collaborators.

Run with: python -m pytest tests/test_engine.py -v
"""

from pathlib import Path

import numpy as np
import pytest

from conftest import solid_image, write_image
from unblend.core.engine import ProcessOptions, WatermarkEngine
from unblend.core.errors import ImageTooSmallError, UnsupportedFormatError
from unblend.core.geometry import WatermarkVariant
from unblend.core.imageio import (
    collect_images, default_output_path, is_supported_image, load_image, save_image
)
from unblend.core.masks import AlphaMaskStore


# ===== Engine =====

def test_engine_initializes_with_packaged_masks(engine):
    assert engine.masks.small.shape == (48, 48)
    assert engine.masks.large.shape == (96, 96)
    assert engine.logo_value == 255.0


def test_engine_accepts_prebuilt_store():
    store = AlphaMaskStore.build()
    assert WatermarkEngine(masks=store).masks is store


def test_watermark_size_for(engine):
    assert engine.watermark_size_for(800, 600) is WatermarkVariant.SMALL
    assert engine.watermark_size_for(1024, 1024) is WatermarkVariant.SMALL
    assert engine.watermark_size_for(1025, 1025) is WatermarkVariant.LARGE
    assert engine.watermark_size_for(2048, 512) is WatermarkVariant.SMALL


def test_config_returns_map_for_variant(engine):
    variant, alpha_map = engine.config(2000, 2000)
    assert variant is WatermarkVariant.LARGE
    assert alpha_map.shape == (96, 96)

    variant, alpha_map = engine.config(2000, 2000, WatermarkVariant.SMALL)
    assert variant is WatermarkVariant.SMALL
    assert alpha_map.shape == (48, 48)


def test_detect_blank_image_is_low_confidence(engine):
    result = engine.detect(np.zeros((200, 200, 3), dtype=np.uint8), ProcessOptions())

    assert not result.detected
    assert result.confidence < 0.1


def test_detect_large_blank_image(engine):
    result = engine.detect(np.zeros((2048, 2048, 3), dtype=np.uint8))
    assert not result.detected


def test_detect_white_image_is_low_confidence(engine):
    result = engine.detect(np.full((300, 300, 3), 255, dtype=np.uint8))

    assert not result.detected
    assert result.confidence < 0.1


def test_force_variant_on_small_image_does_not_fail(engine):
    options = ProcessOptions(force_variant=WatermarkVariant.LARGE)
    result = engine.detect(np.zeros((120, 120, 3), dtype=np.uint8), options)
    assert not result.detected


def test_detect_watermarked_image(engine, make_watermarked):
    watermarked, _ = make_watermarked(400, 300)
    result = engine.detect(watermarked)

    assert result.detected
    assert result.confidence >= 0.35


def test_detect_watermarked_large_image(engine, make_watermarked):
    watermarked, _ = make_watermarked(1600, 1200)
    assert engine.detect(watermarked).detected


def test_remove_restores_original(engine, make_watermarked):
    watermarked, original = make_watermarked(400, 300)

    engine.remove(watermarked)

    diff = np.abs(watermarked.astype(int) - original.astype(int))
    assert diff.max() <= 2


def test_remove_on_blank_images_does_not_fail(engine):
    engine.remove(np.zeros((200, 200, 3), dtype=np.uint8))
    engine.remove(np.zeros((2048, 2048, 3), dtype=np.uint8), WatermarkVariant.LARGE)
    engine.remove(np.zeros((10, 10, 3), dtype=np.uint8))


def test_process_image_removes_detected_watermark(engine, make_watermarked):
    watermarked, original = make_watermarked(400, 300)

    result = engine.process_image(watermarked)

    assert result.success and not result.skipped
    assert result.message == "Watermark removed"
    assert result.detection is not None and result.detection.detected
    assert np.abs(watermarked.astype(int) - original.astype(int)).max() <= 2


def test_process_image_skips_clean_image(engine):
    image = solid_image(400, 300)
    before = image.copy()

    result = engine.process_image(image)

    assert result.success and result.skipped
    assert result.message.startswith("No watermark detected")
    assert np.array_equal(image, before)


def test_process_image_force_skips_detection(engine):
    image = solid_image(400, 300)
    before = image.copy()

    result = engine.process_image(image, ProcessOptions(force=True))

    assert result.success and not result.skipped
    assert result.detection is None
    assert result.confidence == 0.0
    assert not np.array_equal(image, before)


def test_process_image_skips_too_small(engine):
    result = engine.process_image(solid_image(60, 60), ProcessOptions(force=True))

    assert result.success and result.skipped
    assert result.message == "Image too small (60x60) for 48x48 watermark"


def test_too_small_message_comes_from_error_type(engine):
    result = engine.process_image(solid_image(2000, 70), ProcessOptions(force=True))

    assert result.skipped
    assert result.message == str(ImageTooSmallError(2000, 70, 48))


# ===== File processing =====

def test_process_file_writes_output(engine, make_watermarked, tmp_path):
    watermarked, original = make_watermarked(400, 300)
    src = write_image(watermarked, tmp_path / "photo.png")
    dst = tmp_path / "out" / "photo_cleaned.png"

    result = engine.process_file(src, dst)

    assert result.success and not result.skipped
    assert result.output_path == dst
    restored = load_image(dst)
    assert np.abs(restored.astype(int) - original.astype(int)).max() <= 2


def test_process_file_skip_writes_nothing(engine, tmp_path):
    src = write_image(solid_image(400, 300), tmp_path / "clean.png")
    dst = tmp_path / "clean_cleaned.png"

    result = engine.process_file(src, dst)

    assert result.skipped
    assert not dst.exists()


def test_process_file_reports_load_failure(engine, tmp_path):
    src = tmp_path / "broken.png"
    src.write_bytes(b"not an image")

    result = engine.process_file(src, tmp_path / "out.png")

    assert not result.success
    assert result.message.startswith("Failed to load")


def test_process_file_reports_save_failure(engine, make_watermarked, tmp_path):
    watermarked, _ = make_watermarked(400, 300)
    src = write_image(watermarked, tmp_path / "photo.png")

    result = engine.process_file(src, tmp_path / "photo.gif")

    assert not result.success
    assert result.message.startswith("Failed to save")


def test_process_directory(engine, make_watermarked, tmp_path):
    input_dir = tmp_path / "in"
    input_dir.mkdir()
    watermarked, _ = make_watermarked(400, 300)
    write_image(watermarked, input_dir / "a.png")
    write_image(solid_image(400, 300), input_dir / "b.png")
    write_image(watermarked, input_dir / "c.bmp")
    (input_dir / "notes.txt").write_text("ignored")

    output_dir = tmp_path / "out"
    results = engine.process_directory(input_dir, output_dir, ProcessOptions(), workers=2)

    assert [r.path.name for r in results] == ["a.png", "b.png", "c.bmp"]
    assert [r.skipped for r in results] == [False, True, False]
    assert all(r.success for r in results)
    assert (output_dir / "a.png").exists()
    assert (output_dir / "c.bmp").exists()
    assert not (output_dir / "b.png").exists()


def test_iter_process_files_yields_every_job(engine, make_watermarked, tmp_path):
    watermarked, _ = make_watermarked(400, 300)
    jobs = [
        (write_image(watermarked, tmp_path / f"{i}.png"), tmp_path / "out" / f"{i}.png")
        for i in range(4)
    ]

    seen = dict(engine.iter_process_files(jobs, workers=3))

    assert sorted(seen) == [0, 1, 2, 3]
    assert [seen[i].path for i in range(4)] == [src for src, _ in jobs]
    assert all(seen[i].output_path == jobs[i][1] for i in range(4))


@pytest.mark.parametrize("workers", [1, 2])
def test_iter_process_files_cancelled_starts_nothing(engine, tmp_path, workers):
    jobs = [
        (write_image(solid_image(400, 300), tmp_path / f"{i}.png"), tmp_path / "out" / f"{i}.png")
        for i in range(3)
    ]

    assert list(engine.iter_process_files(jobs, workers=workers, is_cancelled=lambda: True)) == []


def test_process_files_keeps_job_order(engine, tmp_path):
    jobs = [
        (write_image(solid_image(400, 300), tmp_path / f"{name}.png"), tmp_path / f"{name}_out.png")
        for name in ("c", "a", "b")
    ]

    results = engine.process_files(jobs, workers=2)

    assert [r.path.name for r in results] == ["c.png", "a.png", "b.png"]
    assert all(r.skipped for r in results)


def test_process_directory_missing_input(engine, tmp_path):
    results = engine.process_directory(tmp_path / "missing", tmp_path / "out")

    assert len(results) == 1
    assert not results[0].success
    assert results[0].message.startswith("Failed to read directory")


# ===== Image I/O =====

def test_default_output_path_appends_cleaned_suffix():
    assert default_output_path(Path("/tmp/photo.jpg")) == Path("/tmp/photo_cleaned.jpg")
    assert default_output_path(Path("image.png")).name == "image_cleaned.png"


def test_is_supported_image():
    for name in ("photo.jpg", "photo.JPEG", "photo.png", "photo.webp", "photo.bmp"):
        assert is_supported_image(name)
    for name in ("photo.gif", "photo.txt", "photo"):
        assert not is_supported_image(name)


def test_save_and_load_png_is_lossless(tmp_path):
    rng = np.random.default_rng(3)
    image = rng.integers(0, 256, size=(32, 40, 3), dtype=np.uint8)

    save_image(image, tmp_path / "x.png")

    assert np.array_equal(load_image(tmp_path / "x.png"), image)


def test_save_jpeg(tmp_path):
    save_image(solid_image(64, 64), tmp_path / "x.jpg")
    assert load_image(tmp_path / "x.jpg").shape == (64, 64, 3)


def test_save_unsupported_format(tmp_path):
    with pytest.raises(UnsupportedFormatError):
        save_image(solid_image(8, 8), tmp_path / "x.tiff")


def test_collect_images_is_sorted_and_filtered(tmp_path):
    for name in ("b.jpg", "a.png", "c.txt"):
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "d.png").mkdir()

    assert [p.name for p in collect_images(tmp_path)] == ["a.png", "b.jpg"]
