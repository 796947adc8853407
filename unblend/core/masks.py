"""
Alpha Mask Store
================
Decodes the two reference captures into per-pixel opacity maps.

Technical Notes:
- Each capture is the logo rendered on a flat background; the opacity of a
  pixel is recovered as max(R, G, B) / 255
- Maps are float32 arrays of shape (size, size) and are made read-only,
  so one store can be shared by any number of threads without locking
- The captures ship as package data (unblend/assets/bg_48.png, bg_96.png)
"""

import io
from dataclasses import dataclass
from importlib import resources

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import MaskDecodeError
from .geometry import WatermarkVariant

ASSET_PACKAGE = "unblend.assets"
ASSET_NAMES = {
    WatermarkVariant.SMALL: "bg_48.png",
    WatermarkVariant.LARGE: "bg_96.png",
}


def calculate_alpha_map(png_bytes: bytes, name: str = "<bytes>") -> np.ndarray:
    """
    Convert a reference capture into an opacity map.

    Args:
        png_bytes: Encoded image data.
        name: Label used in the error message.

    Returns:
        float32 array of shape (height, width) with values in [0, 1].

    Raises:
        MaskDecodeError: If the data is not a decodable image.
    """
    try:
        with Image.open(io.BytesIO(png_bytes)) as img:
            rgb = np.asarray(img.convert("RGB"), dtype=np.float32)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise MaskDecodeError(name, e) from e

    return rgb.max(axis=2) / 255.0


def _read_asset(name: str) -> bytes:
    return resources.files(ASSET_PACKAGE).joinpath(name).read_bytes()


def _checked(alpha_map: np.ndarray, variant: WatermarkVariant) -> np.ndarray:
    expected = (variant.size, variant.size)
    if alpha_map.shape != expected:
        raise RuntimeError(
            f"{variant.name.title()} alpha map must be "
            f"{variant.size}x{variant.size}, got "
            f"{alpha_map.shape[1]}x{alpha_map.shape[0]}"
        )
    alpha_map = np.ascontiguousarray(alpha_map, dtype=np.float32)
    alpha_map.setflags(write=False)
    return alpha_map


@dataclass(frozen=True)
class AlphaMaskStore:
    """The two opacity maps, immutable once built."""
    small: np.ndarray
    large: np.ndarray

    @classmethod
    def from_png_bytes(cls, small_png: bytes, large_png: bytes) -> "AlphaMaskStore":
        """
        Build a store from encoded captures.

        Raises:
            MaskDecodeError: If either capture cannot be decoded.
            RuntimeError: If a capture has the wrong dimensions.
        """
        small = calculate_alpha_map(small_png, ASSET_NAMES[WatermarkVariant.SMALL])
        large = calculate_alpha_map(large_png, ASSET_NAMES[WatermarkVariant.LARGE])
        return cls(
            small=_checked(small, WatermarkVariant.SMALL),
            large=_checked(large, WatermarkVariant.LARGE),
        )

    @classmethod
    def build(cls) -> "AlphaMaskStore":
        """Build the store from the captures shipped with the package."""
        return cls.from_png_bytes(
            _read_asset(ASSET_NAMES[WatermarkVariant.SMALL]),
            _read_asset(ASSET_NAMES[WatermarkVariant.LARGE]),
        )

    def for_variant(self, variant: WatermarkVariant) -> np.ndarray:
        if variant is WatermarkVariant.LARGE:
            return self.large
        return self.small
