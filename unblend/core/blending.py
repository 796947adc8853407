"""
Alpha Blending
==============
The watermark is composited with the forward blend

    watermarked = alpha * logo + (1 - alpha) * original

and removed with its algebraic inverse

    original = (watermarked - alpha * logo) / (1 - alpha)

Technical Notes:
- Pixels with alpha below ALPHA_THRESHOLD are left bit-exact (noise level)
- Alpha is capped at MAX_ALPHA so the division stays stable
- Both directions work in place on the ROI clipped to the image
"""

import numpy as np

from .geometry import Roi

ALPHA_THRESHOLD = 0.002
MAX_ALPHA = 0.99

# White logo
LOGO_VALUE = 255.0


def _clipped_views(image: np.ndarray, alpha_map: np.ndarray, roi: Roi):
    img_h, img_w = image.shape[:2]
    clipped = roi.clip(img_w, img_h)
    if clipped.is_empty:
        return None, None

    rows, cols = clipped.slices()
    alpha = np.asarray(alpha_map, dtype=np.float32)[:clipped.height, :clipped.width]
    return image[rows, cols, :3], alpha


def remove_watermark_alpha_blend(
        image: np.ndarray,
        alpha_map: np.ndarray,
        roi: Roi,
        logo_value: float = LOGO_VALUE
) -> None:
    """
    Reverse the blend over the ROI, modifying the image in place.

    Args:
        image: uint8 array of shape (H, W, C), C >= 3. Only RGB is touched.
        alpha_map: Opacity map of shape (roi.height, roi.width).
        roi: Unclipped watermark region; clipped to the image here.
        logo_value: Logo intensity (255 for white).
    """
    region, alpha = _clipped_views(image, alpha_map, roi)
    if region is None:
        return

    mask = alpha >= ALPHA_THRESHOLD
    if not mask.any():
        return

    capped = np.minimum(alpha, MAX_ALPHA)[:, :, np.newaxis]
    restored = (region.astype(np.float32) - capped * logo_value) / (1.0 - capped)
    restored = np.clip(np.rint(restored), 0, 255).astype(np.uint8)

    region[mask] = restored[mask]


def apply_watermark_alpha_blend(
        image: np.ndarray,
        alpha_map: np.ndarray,
        roi: Roi,
        logo_value: float = LOGO_VALUE
) -> None:
    """
    Composite the logo onto the ROI in place (forward blend).

    Pixels below ALPHA_THRESHOLD are skipped, mirroring the removal.
    """
    region, alpha = _clipped_views(image, alpha_map, roi)
    if region is None:
        return

    mask = alpha >= ALPHA_THRESHOLD
    a = alpha[:, :, np.newaxis]
    blended = a * logo_value + (1.0 - a) * region.astype(np.float32)
    blended = np.clip(np.rint(blended), 0, 255).astype(np.uint8)

    region[mask] = blended[mask]
