"""
Error Types
===========
Exceptions raised by the core package.

Detection and blending never raise on well-formed input; these cover
startup (reference captures) and the file collaborators around the core.
"""


class UnblendError(Exception):
    """Base class for all errors raised by unblend."""


class MaskDecodeError(UnblendError):
    """An embedded reference capture could not be decoded."""

    def __init__(self, name: str, reason: Exception):
        super().__init__(f"Failed to decode alpha map {name}: {reason}")
        self.name = name
        self.reason = reason


class UnsupportedFormatError(UnblendError, ValueError):
    """The requested output format cannot be written."""


class ImageTooSmallError(UnblendError):
    """The image cannot hold a watermark at the expected position."""

    def __init__(self, width: int, height: int, wm_size: int):
        super().__init__(
            f"Image too small ({width}x{height}) for {wm_size}x{wm_size} watermark"
        )
        self.width = width
        self.height = height
        self.wm_size = wm_size
