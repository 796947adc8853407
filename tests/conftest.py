"""
Shared fixtures for the test suite.

Synthetic watermarked images are produced by forward-blending the packaged
opacity maps, so detection and removal can be checked against a known base.
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
import pytest
from PIL import Image
from PyQt6.QtCore import QCoreApplication

from unblend.core.blending import apply_watermark_alpha_blend
from unblend.core.engine import WatermarkEngine


@pytest.fixture(scope="session")
def qapp():
    """Single Qt application object shared by worker and CLI tests."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    return app


@pytest.fixture(scope="session")
def engine():
    return WatermarkEngine()


def solid_image(width: int, height: int, value=(90, 110, 130)) -> np.ndarray:
    image = np.zeros((height, width, 3), dtype=np.uint8)
    image[:, :] = value
    return image


@pytest.fixture
def make_watermarked(engine):
    """Factory: (width, height, value) -> (watermarked, original)."""

    def _make(width: int = 400, height: int = 300, value=(90, 110, 130)):
        original = solid_image(width, height, value)
        watermarked = original.copy()
        variant, alpha_map = engine.config(width, height)
        roi = engine.position(width, height, variant)
        apply_watermark_alpha_blend(watermarked, alpha_map, roi)
        return watermarked, original

    return _make


def write_image(image: np.ndarray, path: Path) -> Path:
    Image.fromarray(image).save(path)
    return path


@pytest.fixture
def image_writer():
    return write_image
