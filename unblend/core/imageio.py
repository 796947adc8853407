"""
Image I/O Helpers
=================
File collaborators around the engine: loading, saving, output naming and
directory listing. Uses PIL/Pillow for all encoding and decoding.
"""

from pathlib import Path
from typing import List, Union

import numpy as np
from PIL import Image

from .errors import UnsupportedFormatError

SUPPORTED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".bmp"}

# Pillow format name per writable suffix
SAVE_FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".webp": "WEBP",
    ".bmp": "BMP",
}

JPEG_QUALITY = 100

CLEANED_SUFFIX = "_cleaned"


def is_supported_image(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def load_image(path: Union[str, Path]) -> np.ndarray:
    """
    Load an image file as a writable RGB uint8 array.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        PIL.UnidentifiedImageError / OSError: If it can't be decoded.
    """
    with Image.open(path) as img:
        return np.array(img.convert("RGB"), dtype=np.uint8)


def save_image(image: np.ndarray, path: Union[str, Path]) -> None:
    """
    Save an RGB array, picking the encoder from the file suffix.

    Raises:
        UnsupportedFormatError: If the suffix is not a writable format.
    """
    path = Path(path)
    fmt = SAVE_FORMATS.get(path.suffix.lower())
    if fmt is None:
        raise UnsupportedFormatError(f"Unsupported image format: {path.suffix or path.name}")

    img = Image.fromarray(np.ascontiguousarray(image[:, :, :3], dtype=np.uint8))
    if fmt == "JPEG":
        img.save(path, fmt, quality=JPEG_QUALITY)
    else:
        img.save(path, fmt)


def default_output_path(path: Union[str, Path]) -> Path:
    """photo.jpg -> photo_cleaned.jpg, next to the input."""
    path = Path(path)
    return path.with_name(f"{path.stem}{CLEANED_SUFFIX}{path.suffix}")


def collect_images(directory: Union[str, Path]) -> List[Path]:
    """
    Supported image files directly inside a directory, sorted by name.

    Raises:
        OSError: If the directory cannot be listed.
    """
    directory = Path(directory)
    return sorted(
        p for p in directory.iterdir()
        if p.is_file() and is_supported_image(p)
    )
