"""
Workers Module - Async Thread Management
========================================
Contains QThread workers for non-blocking watermark operations.

Components:
- RemoveWorker: Batch removal with progress tracking and optional thread pool
- DetectWorker: Single-image detection report
"""

from .detect_worker import DetectWorker, DetectConfig, DetectReport
from .remove_worker import RemoveWorker, RemoveConfig

__all__ = [
    # Remove
    "RemoveWorker",
    "RemoveConfig",
    # Detect
    "DetectWorker",
    "DetectConfig",
    "DetectReport",
]
