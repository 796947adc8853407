"""
Core Module - Pure Algorithm Logic
==================================
This module contains no Qt dependencies.
Mask decoding, detection, blending and the engine live here.
"""

from .detection import DetectionResult, detect_watermark
from .blending import apply_watermark_alpha_blend, remove_watermark_alpha_blend
from .engine import ProcessOptions, ProcessResult, WatermarkEngine
from .errors import (
    ImageTooSmallError, MaskDecodeError, UnblendError, UnsupportedFormatError
)
from .geometry import Roi, WatermarkVariant, select_variant, watermark_position
from .imageio import default_output_path, is_supported_image, load_image, save_image
from .masks import AlphaMaskStore

__all__ = [
    "AlphaMaskStore",
    "DetectionResult",
    "ImageTooSmallError",
    "MaskDecodeError",
    "ProcessOptions",
    "ProcessResult",
    "Roi",
    "UnblendError",
    "UnsupportedFormatError",
    "WatermarkEngine",
    "WatermarkVariant",
    "apply_watermark_alpha_blend",
    "default_output_path",
    "detect_watermark",
    "is_supported_image",
    "load_image",
    "remove_watermark_alpha_blend",
    "save_image",
    "select_variant",
    "watermark_position",
]
