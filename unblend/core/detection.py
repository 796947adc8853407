"""
Watermark Detector
==================
Decides whether the logo is present at its expected region, without any
ground truth, using a weighted three-stage ensemble:

1. Spatial NCC (50%): region brightness against the opacity map
2. Gradient NCC (30%): Sobel edge signature against the map's edges
3. Variance dampening (20%): texture in the region against the patch above

Technical Notes:
- Stage 1 acts as a circuit breaker: a weak spatial score skips stages 2-3
- The caller's threshold only tightens the breaker; "detected" always uses
  the fixed DETECTION_THRESHOLD
- Regions partly outside the image are scored over the clipped intersection
"""

from dataclasses import dataclass

import cv2
import numpy as np

from .geometry import Roi

SPATIAL_WEIGHT = 0.50
GRADIENT_WEIGHT = 0.30
VARIANCE_WEIGHT = 0.20

# Spatial score below min(user_threshold, this) rejects early
SPATIAL_CIRCUIT_BREAKER = 0.25
DETECTION_THRESHOLD = 0.35

# Variance stage needs a reference patch taller than this...
MIN_REF_HEIGHT = 8
# ...with at least this much texture (normalized [0, 1] space)
MIN_REF_STDDEV = 5.0 / 255.0

NCC_EPSILON = 1e-10

LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float32)


@dataclass
class DetectionResult:
    """Scores produced by one detection call."""
    detected: bool = False
    confidence: float = 0.0
    spatial_score: float = 0.0
    gradient_score: float = 0.0
    variance_score: float = 0.0

    def summary(self) -> str:
        return (
            f"{self.confidence * 100:.0f}% confidence, "
            f"spatial={self.spatial_score:.2f}, "
            f"grad={self.gradient_score:.2f}, "
            f"var={self.variance_score:.2f}"
        )


def region_to_grayscale(image: np.ndarray, roi: Roi) -> np.ndarray:
    """Luminance of an RGB region, normalized to [0, 1]."""
    rows, cols = roi.slices()
    region = image[rows, cols, :3].astype(np.float32)
    return region @ LUMA_WEIGHTS / 255.0


def ncc(a: np.ndarray, b: np.ndarray) -> float:
    """
    Normalized cross-correlation of two equal-size arrays.

    Returns a value in [-1, 1], or 0 for empty or flat input.
    """
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    if a.size == 0:
        return 0.0

    da = a - a.mean()
    db = b - b.mean()

    denom = np.sqrt(np.dot(da, da) * np.dot(db, db))
    if denom < NCC_EPSILON:
        return 0.0
    return float(np.dot(da, db) / denom)


def sobel_magnitude(data: np.ndarray) -> np.ndarray:
    """
    Sobel gradient magnitude of a 2D array (3x3 kernels).

    The one-pixel frame is 0; only interior pixels are evaluated.
    """
    data = np.ascontiguousarray(data, dtype=np.float32)
    result = np.zeros_like(data)
    if data.ndim != 2 or data.shape[0] < 3 or data.shape[1] < 3:
        return result

    gx = cv2.Sobel(data, cv2.CV_32F, 1, 0, ksize=3)
    gy = cv2.Sobel(data, cv2.CV_32F, 0, 1, ksize=3)
    result[1:-1, 1:-1] = np.sqrt(gx * gx + gy * gy)[1:-1, 1:-1]
    return result


def stddev(data: np.ndarray) -> float:
    """Population standard deviation; 0 for empty input."""
    data = np.asarray(data, dtype=np.float64)
    if data.size == 0:
        return 0.0
    return float(data.std())


def _variance_score(
        image: np.ndarray,
        gray_region: np.ndarray,
        roi: Roi,
        wm_height: int
) -> float:
    img_h = image.shape[0]
    pos_y = roi.y

    # Reference patch sits directly above the watermark
    ref_h = min(pos_y, wm_height, max(0, img_h - pos_y))
    if ref_h <= MIN_REF_HEIGHT or pos_y < ref_h:
        return 0.0

    ref_roi = Roi(roi.x, pos_y - ref_h, roi.width, ref_h)
    ref_stddev = stddev(region_to_grayscale(image, ref_roi))
    if ref_stddev <= MIN_REF_STDDEV:
        return 0.0

    wm_stddev = stddev(gray_region)
    return float(np.clip(1.0 - wm_stddev / ref_stddev, 0.0, 1.0))


def detect_watermark(
        image: np.ndarray,
        alpha_map: np.ndarray,
        roi: Roi,
        user_threshold: float
) -> DetectionResult:
    """
    Score how likely the watermark occupies the given region.

    Args:
        image: RGB(A) uint8 array of shape (H, W, C).
        alpha_map: Opacity map of shape (roi.height, roi.width).
        roi: Unclipped watermark region.
        user_threshold: Caller threshold, only used for the circuit breaker.

    Returns:
        DetectionResult. Never raises for an out-of-bounds ROI; an empty
        intersection yields the zero result.
    """
    result = DetectionResult()

    img_h, img_w = image.shape[:2]
    clipped = roi.clip(img_w, img_h)
    if clipped.is_empty:
        return result

    gray_region = region_to_grayscale(image, clipped)
    alpha_region = np.asarray(alpha_map, dtype=np.float32)[:clipped.height, :clipped.width]

    # Stage 1: spatial NCC
    spatial_score = max(0.0, ncc(gray_region, alpha_region))
    result.spatial_score = spatial_score

    breaker = min(user_threshold, SPATIAL_CIRCUIT_BREAKER)
    if spatial_score < breaker:
        result.confidence = spatial_score * 0.5
        return result

    # Stage 2: gradient NCC
    gradient_score = max(
        0.0, ncc(sobel_magnitude(gray_region), sobel_magnitude(alpha_region))
    )
    result.gradient_score = gradient_score

    # Stage 3: variance dampening
    result.variance_score = _variance_score(image, gray_region, clipped, roi.height)

    confidence = (
            SPATIAL_WEIGHT * result.spatial_score
            + GRADIENT_WEIGHT * result.gradient_score
            + VARIANCE_WEIGHT * result.variance_score
    )
    result.confidence = float(np.clip(confidence, 0.0, 1.0))
    result.detected = result.confidence >= DETECTION_THRESHOLD

    return result
