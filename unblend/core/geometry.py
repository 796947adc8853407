"""
Watermark Geometry
==================
Chooses the watermark variant for an image and places its region.

Rules:
- LARGE (96x96, 64px margin) only when BOTH width and height exceed 1024
- SMALL (48x48, 32px margin) otherwise, including exactly 1024x1024
- The region is anchored to the bottom-right corner, inset by the margin
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .errors import ImageTooSmallError

# Both dimensions must be strictly greater than this for the large variant
LARGE_IMAGE_THRESHOLD = 1024


class WatermarkVariant(Enum):
    """Watermark size preset: (size_px, margin_px)."""
    SMALL = (48, 32)
    LARGE = (96, 64)

    @property
    def size(self) -> int:
        return self.value[0]

    @property
    def margin(self) -> int:
        return self.value[1]

    @property
    def min_extent(self) -> int:
        """Smallest image dimension that can hold this variant."""
        return self.size + self.margin


@dataclass(frozen=True)
class Roi:
    """Rectangle inside an image, in pixels."""
    x: int
    y: int
    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def clip(self, img_w: int, img_h: int) -> "Roi":
        """Intersect with the image bounds. May return an empty ROI."""
        x2 = min(self.x + self.width, img_w)
        y2 = min(self.y + self.height, img_h)
        return Roi(self.x, self.y, max(0, x2 - self.x), max(0, y2 - self.y))

    def slices(self) -> Tuple[slice, slice]:
        """(rows, cols) slices for indexing an (H, W, ...) array."""
        return (
            slice(self.y, self.y + self.height),
            slice(self.x, self.x + self.width),
        )


def select_variant(width: int, height: int) -> WatermarkVariant:
    """
    Pick the variant from image dimensions.

    A 2048x512 image stays SMALL: one large dimension is not enough.
    """
    if width > LARGE_IMAGE_THRESHOLD and height > LARGE_IMAGE_THRESHOLD:
        return WatermarkVariant.LARGE
    return WatermarkVariant.SMALL


def resolve_variant(
        width: int,
        height: int,
        force_variant: Optional[WatermarkVariant] = None
) -> WatermarkVariant:
    """Explicit override wins over the size heuristic."""
    if force_variant is not None:
        return force_variant
    return select_variant(width, height)


def watermark_position(
        image_w: int,
        image_h: int,
        size_px: int,
        margin_px: int
) -> Tuple[int, int]:
    """Top-left corner of the watermark, clamped to non-negative."""
    x = max(0, image_w - size_px - margin_px)
    y = max(0, image_h - size_px - margin_px)
    return x, y


def watermark_roi(image_w: int, image_h: int, variant: WatermarkVariant) -> Roi:
    """Unclipped watermark region for an image of the given size."""
    x, y = watermark_position(image_w, image_h, variant.size, variant.margin)
    return Roi(x, y, variant.size, variant.size)


def fits(image_w: int, image_h: int, variant: WatermarkVariant) -> bool:
    return image_w >= variant.min_extent and image_h >= variant.min_extent


def check_fits(image_w: int, image_h: int, variant: WatermarkVariant) -> None:
    """
    Raise if the image is too small for the variant.

    Raises:
        ImageTooSmallError: If either side is below size + margin.
    """
    if not fits(image_w, image_h, variant):
        raise ImageTooSmallError(image_w, image_h, variant.size)
