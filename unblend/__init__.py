"""
Unblend
=======
Removes a fixed semi-transparent logo watermark from images by reversing
the alpha blend that applied it.

Modules:
    - core: Pure algorithm logic (no Qt dependencies)
    - workers: QThread workers for async processing

Usage:
    from unblend import WatermarkEngine, ProcessOptions
    from unblend.workers import RemoveWorker, RemoveConfig
"""

__version__ = "1.0.0"
__app_name__ = "Unblend"

# Core exports
from .core import (
    AlphaMaskStore,
    DetectionResult,
    MaskDecodeError,
    ProcessOptions,
    ProcessResult,
    Roi,
    UnblendError,
    UnsupportedFormatError,
    WatermarkEngine,
    WatermarkVariant,
    default_output_path,
    is_supported_image,
    select_variant,
)

__all__ = [
    # Version info
    "__version__",
    "__app_name__",

    # Core
    "AlphaMaskStore",
    "DetectionResult",
    "MaskDecodeError",
    "ProcessOptions",
    "ProcessResult",
    "Roi",
    "UnblendError",
    "UnsupportedFormatError",
    "WatermarkEngine",
    "WatermarkVariant",
    "default_output_path",
    "is_supported_image",
    "select_variant",
]
